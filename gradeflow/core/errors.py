"""
Domain errors raised by the service layer.

Routers translate these into ``HTTPException`` responses; the services
themselves never depend on FastAPI.
"""


class GradeflowError(Exception):
    """Base class for every error the service layer raises on purpose."""


class NotFound(GradeflowError):
    pass


class PermissionDenied(GradeflowError):
    pass


class InvalidInput(GradeflowError):
    pass


class ArtifactRejected(InvalidInput):
    """The uploaded artifact failed validation before any storage write."""

    def __init__(self, message: str, too_large: bool = False):
        super().__init__(message)
        self.too_large = too_large


class StateViolation(GradeflowError):
    """The requested transition is not allowed from the submission's current state."""


class EvaluatorUnavailable(GradeflowError):
    """The inference endpoint failed, refused, or returned nothing usable."""


class StorageError(GradeflowError):
    pass


class ArtifactMissing(StorageError):
    """The referenced object does not exist in storage (already deleted)."""
