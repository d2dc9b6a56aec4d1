"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (customer input, provider callbacks excluded)
    - Money crosses the boundary as Decimal major units, never floats

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
