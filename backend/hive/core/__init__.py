"""Core Layer: pure domain logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are deterministic given their inputs (clocks and RNGs are injected)

Design Decisions:
    - Functional core separated from the imperative shell: services fetch rows, core decides
"""
