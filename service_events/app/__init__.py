"""
Events Service package for the MOV Event Platform.

Owns events and their lifecycle. Requests arrive through the gateway with
the caller identity in ``X-User-*`` headers; ownership and transition
legality are enforced here regardless of what the gateway checked.

Structure:
- app.main: FastAPI app and routes.
- app.manager: Event operations (read, apply rules, compare-and-set).
- app.lifecycle: Models, schemas and the status state machine.
- app.persistence: In-memory repository with optimistic concurrency.
"""
