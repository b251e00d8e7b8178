"""Pydantic Schemas: request/response validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary (user input, API responses)
    - User text passes through core/sanitize.py before it reaches a service

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
