"""Services Layer — webhook routing and sync orchestration.

Invariants:
    - Services depend on core Protocols, never on concrete adapters
    - Event kind → procedure uses an explicit dict mapping (no auto-discovery)

Design Decisions:
    - Router (authenticate, parse, classify) split from orchestrator (resolve, check, write)
"""
