"""
Services Layer

Calendar engine services that:
- Accept domain inputs (IDs, sessions, frozen config snapshots)
- Return domain outputs (dataclasses, dicts)
- Do NOT depend on HTTP request/response objects
- Only the orchestrator writes to the database
"""
