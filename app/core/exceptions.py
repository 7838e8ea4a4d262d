# app/core/exceptions.py
"""Errors raised by the engine services and mapped to HTTP responses in app.main."""

from typing import Optional


class EngineError(Exception):
    """Base exception for engine errors."""
    pass


class NotFoundError(EngineError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationFailure(EngineError):
    """Raised when a write is rejected before any mutation happens."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)
