# Services package init
"""
Bus Pass Backend — Services Layer
=================================

What:  Business rules, between the routes (HTTP) and the models (persistence).
How:   Stateless singletons; every method takes the AsyncSession as its first
       argument and returns Pydantic response models, never ORM objects.

Service Inventory:
    - CatalogService:       pass types (create, update, list)
    - ApplicationService:   submit, decide, admin listing, passenger passes
    - PaymentService:       one payment per application
    - VerificationService:  conductor scans, dashboard, history
    - ReportingService:     admin statistics
    - UserService:          user directory reads
    - StorageService:       uploaded documents on local disk
    - QRCodec:              pass payload <-> PNG QR data URL
"""
