"""Services Layer: conversation lifecycle, timer, recovery and scoring.

Invariants:
    - Services orchestrate core functions and boundary Protocols
    - Only ConversationSession mutates ConversationState

Design Decisions:
    - One ConversationSession per live conversation, looked up through ConversationRegistry
"""
