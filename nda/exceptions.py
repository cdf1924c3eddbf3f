"""
Error taxonomy for the NDA subsystem.

Every error carries a machine-readable ``code`` so HTTP and CLI callers can
branch on the kind of failure, plus optional per-field messages for the
cases where the user has to fix specific input.
"""


class NdaError(Exception):
    code = "nda_error"
    http_status = 400
    retryable = False

    def __init__(self, message="", fields=None):
        super().__init__(message)
        self.message = str(message)
        self.fields = dict(fields or {})

    def as_dict(self):
        return {
            "error": self.code,
            "message": self.message,
            "fields": {name: str(msg) for name, msg in self.fields.items()},
            "retryable": self.retryable,
        }


class ValidationError(NdaError):
    """Missing or malformed contact/personal data. ``fields`` names each problem."""
    code = "validation_error"
    http_status = 400

    @property
    def missing_fields(self):
        return sorted(self.fields)


class PreconditionError(NdaError):
    """The operation is not allowed in the current state (unverified company, wrong status...)."""
    code = "precondition_failed"
    http_status = 422


class PermissionDeniedError(PreconditionError):
    code = "forbidden"
    http_status = 403


class ConflictError(NdaError):
    """A live agreement already exists for the (project, company) pair."""
    code = "conflict"
    http_status = 409

    def __init__(self, message="", fields=None, existing=None):
        super().__init__(message, fields)
        self.existing = existing


class NotFoundError(NdaError):
    code = "not_found"
    http_status = 404


class ProviderError(NdaError):
    """The signature provider call failed. Fix-your-data problems are ValidationError instead."""
    code = "provider_error"
    http_status = 502


class ProviderUnavailable(ProviderError):
    """Network failure, timeout or provider-side 5xx. Safe to retry with backoff."""
    code = "provider_unavailable"
    http_status = 503
    retryable = True


class ProviderRejected(ProviderError):
    code = "provider_rejected"


class EnvelopeNotFound(ProviderError):
    """The provider definitively does not know the envelope."""
    code = "envelope_not_found"
    http_status = 404
