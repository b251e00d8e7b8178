"""HIVE Protocol backend package: multi-tenant API for collaborative AI-agent swarms.

Invariants:
    - Package root contains no executable code (no import side-effects)
"""
