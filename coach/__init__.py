"""Persona Coach backend: timed voice practice conversations with AI personas.

Invariants:
    - Package root contains no executable code (no import side effects)
"""
