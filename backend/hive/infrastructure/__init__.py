"""Infrastructure Layer: external service clients and cross-cutting concerns.

Invariants:
    - All external calls wrapped with retry/timeout/error mapping
    - Failures surface as HiveError subclasses (core/errors.py)
"""
