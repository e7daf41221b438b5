# Middleware package init
"""
Trame Backend — Middleware Package
===================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit: rejects credential brute-forcing before any other work
    2. Request ID: correlation id for logs, error bodies and the response header
    3. Logging: one access line per request, tagged with the request id
    4. CORS: FastAPI's CORSMiddleware (handles preflight)

Note: the rate limiter runs outside the request-id middleware, so its 429
bodies carry an empty request_id.
"""
