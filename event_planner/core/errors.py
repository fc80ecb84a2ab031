"""
Error types shared by the store, mutation handlers and notification bus.

Each error exposes an ``extensions`` dict; graphql-core copies it onto the
GraphQL error it builds around the exception, so clients get a stable
``code`` without any translation layer in the resolvers.
"""
from typing import Any, Dict, Optional


class EventPlannerError(Exception):
    """Base error for the service"""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def extensions(self) -> Dict[str, Any]:
        return {"code": self.code, **self.details}


class NotFoundError(EventPlannerError):
    """Requested id is absent from the target collection"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} with id '{entity_id}' not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(EventPlannerError):
    """Payload is missing a required field or carries a malformed value"""

    code = "VALIDATION_ERROR"

    def __init__(self, entity: str, errors: list):
        super().__init__(
            f"Invalid {entity} payload",
            details={"entity": entity, "errors": errors},
        )
        self.entity = entity
        self.errors = errors


class PublishFailure(EventPlannerError):
    """The notification could not be handed to the broker"""

    code = "PUBLISH_FAILURE"

    def __init__(self, event_name: str, reason: str):
        super().__init__(
            f"Failed to publish '{event_name}': {reason}",
            details={"event": event_name},
        )
        self.event_name = event_name
        self.reason = reason


class BrokerError(EventPlannerError):
    """Broker link is unavailable"""

    code = "BROKER_ERROR"
