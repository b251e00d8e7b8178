"""Services Layer: database-backed operations behind the API routes.

Invariants:
    - Services receive an AsyncSession; they never create engines
    - Policy decisions are delegated to pure core/ modules
"""
