"""
RepairDesk Backend — Middleware Package
========================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so every access log line carries it. CORS skips
    /send-confirmation-email, which sets its own headers.
"""
