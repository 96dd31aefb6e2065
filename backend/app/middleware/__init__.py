# Middleware package init
"""
Posts API Backend: Middleware Package
======================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error log lines
    share its correlation ID.
"""
