"""Services Layer — model gateway, analysis store shell, and flow handlers.

Invariants:
    - Handlers split by concern (analysis, facts, artifacts, discovery)
    - Every flow checks its cancellation token before committing results

Design Decisions:
    - PerspectiveOrchestrator is a thin facade over the handlers (routes talk to one object)
    - Model access goes through the MetaphorGateway protocol so flows are testable offline
"""
