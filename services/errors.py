class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    # duplicate unique key (item name, occupied night, ...)
    status_code = 400


class TransientStoreError(ServiceError):
    status_code = 500


class UpstreamServiceError(ServiceError):
    status_code = 500
