"""
Domain exceptions for workshop business logic

These exceptions represent business rule violations and domain-specific errors.
The business layer raises them; routes turn them into JSON envelopes with
to_response().
"""


class WorkshopDomainError(Exception):
    """Base exception for all workshop domain errors"""
    status_code = 400

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self):
        payload = {"success": False, "message": self.message}
        payload.update(self.extra)
        return payload

    def to_response(self):
        """Return (payload, status) for jsonify"""
        return self.to_payload(), self.status_code


class NotFoundError(WorkshopDomainError):
    """Raised when a job, product or resource id does not resolve"""
    status_code = 404


class InvalidStateError(WorkshopDomainError):
    """Raised when the job or resource status forbids the operation"""
    pass


class InsufficientStockError(WorkshopDomainError):
    """Raised when requested part quantities exceed current stock"""

    def __init__(self, shortages, message='Insufficient stock for required parts'):
        super().__init__(message, shortages=shortages)
        self.shortages = shortages


class ValidationError(WorkshopDomainError):
    """Raised when a payload is malformed"""

    def __init__(self, message, errors=None):
        if errors:
            super().__init__(message, errors=errors)
        else:
            super().__init__(message)
        self.errors = errors or []


class ResourceConflictError(WorkshopDomainError):
    """Raised when a concurrent writer changed a resource first; the caller should retry"""
    status_code = 409
