# Routes package init
"""
Posts API Backend: API Routes Package
======================================

Route Inventory:
    - home.py:      GET /, /auth, /oauth, /profile   (HTML pages, Google sign-in)
    - users.py:     GET /users, /users/{id}
    - posts.py:     /posts, /posts/{id}              (bearer token, owner checks)
    - comments.py:  /comments, /comments/{id}
    - health.py:    GET /health

Routes stay thin: each handler is a fixed sequence of validate, authenticate,
fetch, authorize, write and respond steps, with the work done by services.
"""
