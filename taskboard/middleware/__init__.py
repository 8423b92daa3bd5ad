"""
TaskBoard — Middleware Package
===============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: correlation ID for logs, error bodies (429s included)
       and response headers
    2. Rate Limit: reject abusive clients (and sign-in brute force) before any
       further processing
    3. Logging: method, path, status and duration with the request ID
    4. GZip: compresses JSON bodies over 500 bytes
    5. CORS: FastAPI's CORSMiddleware (handles preflight)
"""
