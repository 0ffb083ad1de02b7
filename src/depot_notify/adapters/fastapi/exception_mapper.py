"""FastAPI adapter – FastAPIExceptionMapper."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from depot_notify.kernel.errors import BaseError
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)


class FastAPIExceptionMapper:
    """Turn :class:`BaseError` subclasses into JSON error responses.

    The status comes from the error class's ``http_status`` (400 validation,
    401 unauthorized, 404 not found, 409 conflict, 422 other domain errors,
    503 infrastructure, 500 otherwise). Body schema::

        {"code": "unauthorized", "message": "...", "detail": {}}

    ``cause`` is never sent to the client; 5xx responses are logged with it.
    """

    def status_for(self, exc: BaseException) -> int:
        if isinstance(exc, BaseError):
            return exc.http_status
        return 500

    def register(self, app: FastAPI) -> None:
        app.add_exception_handler(BaseError, self._handle)

    async def _handle(self, request: Request, exc: BaseError) -> JSONResponse:
        status = self.status_for(exc)
        if status >= 500:
            logger.error("http.request_failed", path=request.url.path, status=status, **exc.to_dict())
        return JSONResponse(status_code=status, content=exc.to_dict(include_cause=False))


__all__ = ["FastAPIExceptionMapper"]
