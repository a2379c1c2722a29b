"""
Services layer - complaint business logic.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Collaborators (store, resolver, classifier, notifier) are injected
- Dependency failures are logged, never raised to the caller
"""
