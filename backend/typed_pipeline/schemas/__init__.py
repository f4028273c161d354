"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (request bodies, JSON responses)

Design Decisions:
    - Validation runs inside json_body middleware, so invalid input is a
      Failure(BadRequest) rather than a framework exception
"""
