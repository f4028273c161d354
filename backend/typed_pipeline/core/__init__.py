"""Core Layer — Result, envelopes, request context, middleware, pipeline composer.

Invariants:
    - No module in core/ imports from api/, services/, or infrastructure/
    - Nothing in core/ writes to a transport except ResponseEnvelope.render

Design Decisions:
    - Functional core separated from the transport shell (ADR: impureim sandwich)
"""
