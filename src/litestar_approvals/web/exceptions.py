"""Exception handling for the approvals web endpoints.

Maps every :class:`~litestar_approvals.exceptions.ApprovalsError` to an HTTP status
by its ``kind`` and renders a ``{"error": kind, "message": ...}`` body.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from litestar import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from litestar_approvals.exceptions import (
    ConfigurationError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

    from litestar_approvals.exceptions import ApprovalsError

__all__ = ["STATUS_BY_KIND", "approvals_error_handler"]

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    NotFoundError.kind: HTTP_404_NOT_FOUND,
    ValidationError.kind: HTTP_400_BAD_REQUEST,
    InvalidStateError.kind: HTTP_409_CONFLICT,
    ForbiddenError.kind: HTTP_403_FORBIDDEN,
    ConfigurationError.kind: HTTP_422_UNPROCESSABLE_ENTITY,
}
"""HTTP status code per error family."""


def approvals_error_handler(
    request: Request,
    exc: ApprovalsError,
) -> Response:
    """Exception handler for ApprovalsError.

    Args:
        request: The Litestar request object.
        exc: The raised approvals error.

    Returns:
        JSON response with the error family and message.
    """
    status_code = STATUS_BY_KIND.get(exc.kind, HTTP_500_INTERNAL_SERVER_ERROR)
    logger.debug("%s %s failed with %s: %s", request.method, request.url.path, exc.kind, exc)
    return Response(
        content={"error": exc.kind, "message": str(exc)},
        status_code=status_code,
        media_type="application/json",
    )
