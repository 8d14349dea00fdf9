# Schemas package init
"""
Bus Pass Backend — Pydantic Request/Response Schemas
====================================================

What:  API contracts, kept separate from the SQLAlchemy models so the wire
       shape can evolve independently of the table layout.

Modules:
    - common.py:        envelope, pagination, error, health
    - catalog.py:       pass types
    - user.py:          user summaries
    - application.py:   applications, decisions, payments, issued passes
    - verification.py:  conductor scans, dashboard, QR payload
    - report.py:        admin statistics
"""
