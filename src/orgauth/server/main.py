import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from orgauth.main.config import get_settings
from orgauth.main.logging import get_logger
from orgauth.main.models import GeneralError
from orgauth.pages.pages_router import router as pages_router
from orgauth.server import api_documentation
from orgauth.server.dependencies.lifespan import lifespan
from orgauth.server.exception_handlers import add_exception_handlers
from orgauth.server.middleware.request_context import RequestContextMiddleware
from orgauth.server.middleware.session_cookie import SessionCookieMiddleware
from orgauth.server.routers import router as api_router

logger = get_logger(__name__)


def get_application():
    settings = get_settings()

    app = FastAPI(
        title=api_documentation.TITLE,
        version=settings.app_version,
        description=api_documentation.SUMMARY,
        openapi_tags=api_documentation.TAGS_METADATA,
        lifespan=lifespan,
    )

    app.add_middleware(SessionCookieMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(pages_router, tags=["pages"])

    # Add handlers of all errors except 500
    add_exception_handlers(app)

    @app.exception_handler(500)
    async def custom_http_500_exception_handler(request, exc):
        logger.exception(
            f"Unhandled error: {request.method} {request.url.path}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=GeneralError(
                message="Something went wrong", error_code="internal_error"
            ).model_dump(),
        )

    @app.get(f"{settings.api_prefix}/healthz")
    async def get_healthz():
        return {"status": "OK", "version": settings.app_version}

    return app


app = get_application()


def start():
    uvicorn.run(
        "orgauth.server.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().dev,
    )
