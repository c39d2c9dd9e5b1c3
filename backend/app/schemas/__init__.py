"""Pydantic Schemas — inbound webhook payload validation.

Invariants:
    - Schemas validate at system boundary (partner webhooks), after signature checks
    - Domain types from core/ are produced by classification, not by schemas

Design Decisions:
    - Separate from models: schemas are wire contracts, models are persistence
"""
