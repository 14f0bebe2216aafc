"""Pydantic Schemas: request/response validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary
    - Domain enums from core/ are reused for enum fields
"""
