"""Translate domain errors into DRF responses."""

from rest_framework import status
from rest_framework.response import Response

from .exceptions import (
    CartMergeConflict,
    DuplicateEntity,
    EntityNotFound,
    InsufficientStock,
    InvalidCartState,
    StoreError,
    ValidationFailure,
)

STATUS_BY_ERROR = {
    EntityNotFound: status.HTTP_404_NOT_FOUND,
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    InvalidCartState: status.HTTP_409_CONFLICT,
    InsufficientStock: status.HTTP_409_CONFLICT,
    CartMergeConflict: status.HTTP_409_CONFLICT,
    DuplicateEntity: status.HTTP_409_CONFLICT,
}


def error_response(exc: StoreError) -> Response:
    """Render `exc` as `{"detail", "code"}` with the mapped HTTP status."""

    code = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, InsufficientStock):
        body.update({"product_id": exc.product_id, "requested": exc.requested, "available": exc.available})
    return Response(body, status=code)
