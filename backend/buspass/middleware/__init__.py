# Middleware package init
"""
Bus Pass Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line can read the correlation ID
    2. Access log: method, path, status, duration, request ID, client IP

Identity is NOT middleware; routes declare it with Depends(require_role(...))
so each router states which roles it admits.
"""
