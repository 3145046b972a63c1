"""
Error Taxonomy

Exceptions raised across the orchestration pipeline. Service errors are
classified once, at the service boundary, so the retry executor and the
workflow coordinator can decide what to do by type alone.
"""


class ServiceError(Exception):
    """Raised when the generative service call fails."""

    pass


class TransientServiceError(ServiceError):
    """Rate-limit or quota signal (or a not-found treated as temporary).

    The only error the retry executor retries by default.
    """

    pass


class ResourceNotFoundError(ServiceError):
    """Service reported the requested model or resource does not exist."""

    pass


class ServiceAuthenticationError(ServiceError):
    """Credentials are missing, invalid or revoked."""

    pass


class ServiceTimeoutError(ServiceError):
    """Service call exceeded the configured timeout."""

    pass


class ExtractionError(Exception):
    """Raised when a service response cannot be turned into a structured value."""

    pass


class SchemaValidationError(ExtractionError):
    """Response is not valid JSON or violates the declared output schema."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class UnsupportedInputError(Exception):
    """Resume file type or content cannot be ingested."""

    pass


class WorkflowStateError(Exception):
    """Workflow action attempted without its prerequisites or while busy."""

    pass
