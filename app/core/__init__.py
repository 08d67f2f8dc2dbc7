"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps. Nothing in
here knows about notifications, roles or push subscriptions.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError / InvalidRequestError: Validation failures
    - NotFoundError: Missing resources (404)
    - ExternalServiceError: Third-party service failures
    - api_exception_handler: DRF exception handler

Helpers (import from core.helpers):
    - validate_uuid: UUID validation
    - sign_payload / verify_signature: HMAC-SHA256 request signing

Views (import from core.views):
    - health_check: Database and cache probe for load balancers
"""
