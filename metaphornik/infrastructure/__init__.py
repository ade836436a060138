"""Infrastructure Layer — external model clients, database engine, logging.

Invariants:
    - Infrastructure never imports from core/ flow logic
    - External calls wrapped with retry/timeout and mapped to domain errors

Design Decisions:
    - Anthropic for text and structured output, Gemini for images
    - Resilient wrappers over raw SDK clients (one client per provider)
"""
