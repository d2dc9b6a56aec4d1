"""API Layer — FastAPI routes, dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON, except the file download and the
      WhatsApp handshake (plain text, as Meta expects)

Design Decisions:
    - Thin routes delegate to services (functional core, imperative shell)
"""
