"""API Layer — transport adapter, Starlette binding, routes, error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Every pipeline route answers through the transport adapter

Design Decisions:
    - Thin routes: extraction lives in middlewares, logic in handlers
"""
