# Routes package init
"""
Trame Backend — API Routes Package
===================================

Route Inventory:
    - auth.py:    POST /api/signup, POST /api/login, POST /api/logout
    - notes.py:   GET/PUT /api/note, GET /api/note/blocks   (bearer token)
    - health.py:  GET  /health

Routes stay thin: extract request data, call a service, shape the response.
"""
