"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the marketplace apps. Business logic does
not live here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Money (import from core.money):
    - MoneyField, to_money, format_money, ZERO

Services (import from core.services):
    - BaseService: Base class for service layer (logging, bounded atomic)
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError and its subclasses

Views (import from core.views):
    - health_check, service_response

Note:
    Models, model mixins and views are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    InvariantViolationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    "BaseService",
    "ServiceResult",
    "BaseApplicationError",
    "ConflictError",
    "ExternalServiceError",
    "InvariantViolationError",
]
