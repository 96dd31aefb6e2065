# Services package init
"""
Posts API Backend: Services Layer
==================================

Service Inventory:
    - ResourceService:   Shared create/read/list/edit/delete over one kind
    - UserService:       Users, created on first sign-in
    - PostService:       Owned posts, five per page
    - CommentService:    Standalone comments, five per page
    - TokenVerifier:     Google ID token verification (JWKS, RS256)
    - GoogleOAuthClient: Consent URL and authorization-code exchange

Services are built once per process (app.dependencies.build_services) and
injected into routes through FastAPI dependencies.
"""
