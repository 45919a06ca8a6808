# Routes package init
"""
Users API — Routes Package
===========================

Route Inventory:
    - users.py:   POST   /createUser
                  GET    /users
                  PUT    /updateUser/{id}
                  DELETE /deleteUser/{id}
    - home.py:    GET    /                      (plain-text welcome)
    - docs.py:    GET    /api-docs              (Swagger UI)
                  GET    /api-docs/openapi.json (static API description)
    - health.py:  GET    /health                (MongoDB ping)

Routes stay thin: read the request, call the repository, wrap the result.
"""
