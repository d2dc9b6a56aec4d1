"""Infrastructure Layer — database, provider clients, file storage, logging.

Invariants:
    - Infrastructure imports only core/errors from the core (never domain rules)
    - All external calls wrapped with timeout and error mapping (no retries)

Design Decisions:
    - One thin wrapper per provider over a shared httpx POST helper
"""
