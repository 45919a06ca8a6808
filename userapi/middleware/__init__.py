# Middleware package init
"""
Users API — Middleware Package
===============================

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Handler

    Request ID runs first so the access-log line and any error body for the
    same request share one correlation ID.
"""
