class AppException(Exception):
    """Base application exception."""

    pass


class NotFoundError(AppException):
    """Resource not found exception."""

    pass


class ValidationError(AppException):
    """Validation error exception."""

    pass


class ExternalServiceError(AppException):
    """Upstream service (GitHub, model API) failed."""

    pass


class ProcessingError(AppException):
    """Processing error exception."""

    pass
