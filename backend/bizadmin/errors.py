"""Typed failures raised by the service layer.

Each class is a werkzeug HTTPException so the unified error handler in the app
factory renders it without any per-route translation.
"""
from __future__ import annotations
from typing import Dict, Optional
from werkzeug.exceptions import BadRequest, NotFound, Conflict, Forbidden, InternalServerError


class ValidationError(BadRequest):
    name = 'Validation Error'

    def __init__(self, description: Optional[str] = None, fields: Optional[Dict[str, str]] = None):
        super().__init__(description=description)
        self.fields = fields or {}


class NotFoundError(NotFound):
    def __init__(self, entity: str, entity_id=None):
        detail = f'{entity} not found' if entity_id is None else f'{entity} {entity_id} not found'
        super().__init__(description=detail)
        self.entity = entity


class ConflictError(Conflict):
    pass


class IntegrityViolationError(BadRequest):
    """Cross-entity relationship violation (not a duplicate)."""
    name = 'Integrity Violation'


class CapacityExceededError(IntegrityViolationError):
    name = 'Capacity Exceeded'


class AccessDenied(Forbidden):
    pass


class CascadeFailure(InternalServerError):
    name = 'Cascade Failure'


__all__ = [
    'ValidationError', 'NotFoundError', 'ConflictError', 'IntegrityViolationError',
    'CapacityExceededError', 'AccessDenied', 'CascadeFailure',
]
