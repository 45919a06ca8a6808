# Services package init
"""
Users API — Services Layer
===========================

What:  Data access sitting between routes (HTTP) and MongoDB (persistence).

Service Inventory:
    - UserRepository: create / list / update / delete users in one collection

Why the repository is separate from routes:
    1. Testability: exercised with an in-memory collection, no HTTP needed
    2. Single responsibility: routes map HTTP, the repository maps storage
"""
