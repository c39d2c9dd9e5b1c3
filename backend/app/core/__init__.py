"""Core Layer — pure domain logic: types, errors, mappings, signatures, classification.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - No IO: external systems appear only as Protocols (repository_protocols.py)
    - Secrets arrive as arguments, never read from the environment here

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
