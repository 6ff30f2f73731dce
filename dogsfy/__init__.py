"""
Dogsfy Backend — Package Initializer
=====================================

What: Marks the `dogsfy` directory as a Python package.
Who:  Used by uvicorn (`dogsfy.main:app`), pytest, and the schema bootstrap script.

Architecture Note:
    Users live in two hemisphere partitions; friendships live in a third.

    ┌─────────────────────────────────────┐
    │     Account Service (use cases)     │  ← pre-checks, cascade ordering
    ├─────────────────────────────────────┤
    │  User Directory │ Friendship Graph  │  ← fan-out, symmetric edges
    ├─────────────────────────────────────┤
    │   Partition Resolver / Record IDs   │  ← n/s routing by id prefix
    ├─────────────────────────────────────┤
    │  Partition Stores (north/south/fr.) │  ← one async engine per partition
    └─────────────────────────────────────┘

    No layer holds a transaction that spans two partitions.
"""

__version__ = "1.0.0"
