"""Core Layer — pure storefront rules, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (time and randomness injected or isolated)

Design Decisions:
    - Functional core separated from imperative shell: lattice, signatures, pricing and
      token policy are unit-tested without a database
"""
