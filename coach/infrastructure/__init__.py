"""Infrastructure Layer: external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports services
    - All external calls wrapped with retry/timeout/error mapping
"""
