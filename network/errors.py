"""
Error taxonomy for the network core.

Ambiguous matches are not errors - they come back as an Ambiguous
resolution and go to the review queue.
"""


class NetworkError(Exception):
    """Base exception for all network core errors."""

    pass


class NotFoundError(NetworkError):
    """Reference to an entity, relationship or review item that doesn't exist."""

    def __init__(self, kind: str, ref: str):
        super().__init__(f"{kind} not found: {ref}")
        self.kind = kind
        self.ref = ref


class InvalidIntervalError(NetworkError):
    """End date before start date."""

    def __init__(self, start_date, end_date):
        super().__init__(f"end_date {end_date} is before start_date {start_date}")
        self.start_date = start_date
        self.end_date = end_date


class InvalidTransitionError(NetworkError):
    """Illegal review queue state change."""

    def __init__(self, item_id: str, current: str, requested: str, reason: str = ""):
        message = f"review item {item_id}: cannot go from {current} to {requested}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.item_id = item_id
        self.current = current
        self.requested = requested


class InvalidRelationshipError(NetworkError):
    """Relationship with wrong party types, or a second open one between the same parties."""

    pass


class DuplicateIdentifierError(NetworkError):
    """An identifier value is already taken by another entity of the same type."""

    def __init__(self, entity_type: str, key: str, value: str, existing_id: str):
        super().__init__(f"{entity_type} {key}={value} already belongs to {existing_id}")
        self.entity_type = entity_type
        self.key = key
        self.value = value
        self.existing_id = existing_id


class MalformedPayloadError(NetworkError):
    """Import payload is missing required fields or carries unknown flags."""

    pass


class PersistenceError(NetworkError):
    """Backend unavailable or its files are unreadable."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error
