"""Services Layer — order, payment, download and delivery handlers.

Invariants:
    - Handlers receive (db, StoreConfig) at construction; no ambient config lookups
    - State transitions use conditional UPDATEs, never read-then-write

Design Decisions:
    - One handler class per pipeline stage for locality (no god objects)
"""
