# Routes package init
"""
Bus Pass Backend — HTTP Routes
==============================

What:  Thin FastAPI routers, one per caller role, plus files and health.
How:   Each handler resolves identity and session via Depends, calls exactly
       one service method, and wraps the result in ApiResponse. Business
       rules and error decisions live in the services.

Routers:
    - health.py      GET  /health
    - passenger.py   /api/v1/passenger/...   (PASSENGER)
    - admin.py       /api/v1/admin/...       (ADMIN)
    - conductor.py   /api/v1/conductor/...   (CONDUCTOR)
    - files.py       /api/v1/files/...       (ADMIN, PASSENGER)
"""
