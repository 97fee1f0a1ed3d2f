import logging
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

log = logging.getLogger(__name__)


class ErrorGuardMiddleware(BaseHTTPMiddleware):
    """
    Last line of defence: turns any exception that escaped a handler into a
    500 response so a single failing request never takes the panel down.
    """
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            log.error(f"Unhandled error while serving {request.method} {request.url.path}: {e}", exc_info=True)
            return JSONResponse({"error": "Internal Server Error", "detail": str(e)}, status_code=500)
