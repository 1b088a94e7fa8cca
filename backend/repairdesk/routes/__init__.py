# Routes package init
"""
RepairDesk Backend — API Routes Package
========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - repair_requests.py:  POST /api/repair-requests        (intake form)
    - catalog.py:          GET  /api/catalog/phone-models
                           GET  /api/catalog/urgency-levels
    - notifications.py:    POST /send-confirmation-email   (confirmation function)
                           OPTIONS /send-confirmation-email
    - files.py:            GET  /storage/{bucket}/{key}    (local attachments)
    - health.py:           GET  /health

Routes stay thin: extract the request data, call a service, shape the
response. Business logic lives in repairdesk.services.
"""
