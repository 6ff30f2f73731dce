# Routes package init
"""
Dogsfy Backend — Routes Package
=================================

Route Inventory:
    - health.py:  GET /health   (per-partition connectivity)

User and friend endpoints are served by an external HTTP layer that calls
AccountService (available on `app.state.accounts`).
"""
