# app/services/exceptions.py
"""
Service-level errors. Routers never catch these; the handlers registered in
app/main.py turn them into JSON responses.
"""


class ValidationFailed(Exception):
    """Field-scoped validation failure, raised before any write is attempted."""

    def __init__(self, errors: dict):
        super().__init__("Validation failed")
        self.errors = errors


class NotFound(Exception):
    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class LifecycleError(Exception):
    """A transactional write failed and was rolled back. Message is user-facing."""
