from fastapi import FastAPI
from fastapi.responses import JSONResponse

from orgauth.main.exceptions import EXCEPTION_MAP, UpstreamProtocolError
from orgauth.main.logging import get_logger
from orgauth.main.models import GeneralError

logger = get_logger(__name__)


def add_exception_handlers(app: FastAPI):
    for exception, (status_code, error_message, error_code) in EXCEPTION_MAP.items():

        def handler(
            request,
            exc,
            status_code=status_code,
            error_message=error_message,
            error_code=error_code,
        ):
            message = error_message or str(exc)

            if status_code in (401, 403):
                logger.info(
                    f"Request rejected: {request.method} {request.url.path} - {str(exc)}",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "error_code": error_code,
                        "status_code": status_code,
                    },
                )
            elif isinstance(exc, UpstreamProtocolError):
                logger.error(
                    f"Upstream failure: {request.method} {request.url.path} - {str(exc)}",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "error_code": error_code,
                        "upstream_status": exc.status,
                    },
                )

            return JSONResponse(
                status_code=status_code,
                content=GeneralError(message=message, error_code=error_code).model_dump(),
            )

        app.add_exception_handler(exception, handler)
