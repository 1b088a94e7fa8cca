"""
RepairDesk Backend — Services Layer
====================================

Service Inventory:
    - media_capture:      VoiceRecorder / PhotoPicker (captured payloads)
    - form_validation:    RepairFormState and the submit-time rules
    - storage_base:       StorageBackend contract
    - local_storage:      Disk backend (aiofiles)
    - supabase_storage:   Supabase Storage backend (httpx)
    - upload_service:     Upload client (keys, classification, one retry)
    - record_store:       RecordStore / SqlRecordStore
    - email_service:      Confirmation email composition and delivery
    - notifier:           In-process or HTTP access to the confirmation function
    - submission_service: SubmissionOrchestrator
"""
