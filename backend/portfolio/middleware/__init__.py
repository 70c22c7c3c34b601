# Middleware package init
"""
Photography Portfolio Backend — Middleware Package
===================================================

What:  Cross-cutting concerns applied to every request, plus the auth gate.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients before any processing
    2. Request ID: correlation ID for every log line of the request
    3. Logging: method, path, status and duration with the request ID
    4. GZip / CORS: Starlette built-ins

The auth gate (portfolio.middleware.auth) is not a Starlette middleware.
It is a set of FastAPI dependencies attached per route, because only some
routes are protected and the admin variant differs from the optional one.
"""
