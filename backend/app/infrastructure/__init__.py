"""Infrastructure Layer — external system adapters and cross-cutting concerns.

Invariants:
    - Adapters implement core/repository_protocols.py and return core types
    - All external calls bounded by timeout and mapped to ExternalApiError

Design Decisions:
    - One adapter per external system over a shared ExternalHttp helper
"""
