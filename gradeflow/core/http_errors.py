from fastapi import HTTPException, status

from gradeflow.core.errors import (
    ArtifactRejected,
    GradeflowError,
    InvalidInput,
    NotFound,
    PermissionDenied,
    StateViolation,
    StorageError,
)


def to_http_exception(e: GradeflowError) -> HTTPException:
    if isinstance(e, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, PermissionDenied):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, ArtifactRejected):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE if e.too_large else status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    elif isinstance(e, InvalidInput):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, StateViolation):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, StorageError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(e))
