"""Core Layer: pure conversation logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are deterministic given their inputs (clocks are passed in)
"""
