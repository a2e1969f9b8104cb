from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from checkout.config import Settings, get_settings
from checkout.logging import configure_logging
from checkout.routes import router, templates
from checkout.stripe_service import StripeGateway
from checkout.webhooks import router as webhook_router

STATIC_DIR = Path(__file__).resolve().parent / "static"

log = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, gateway: Optional[StripeGateway] = None) -> FastAPI:
    settings = (settings or get_settings()).ensure_keys()
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)

    if gateway is None:
        gateway = StripeGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            publishable_key=settings.STRIPE_PUBLISHABLE_KEY,
            currency=settings.DEFAULT_CURRENCY,
        )

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.gateway = gateway

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    app.include_router(router)
    app.include_router(webhook_router)

    @app.exception_handler(StarletteHTTPException)
    async def html_error_page(request: Request, exc: StarletteHTTPException):
        # API and webhook callers get JSON, browsers get the error page
        if request.url.path.startswith(("/api/", "/stripe/")):
            return await http_exception_handler(request, exc)
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": exc.detail, "status_code": exc.status_code},
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def server_error_page(request: Request, exc: Exception):
        log.exception("app.unhandled_error", path=request.url.path)
        show_detail = settings.ENVIRONMENT == "development"
        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "message": str(exc) if show_detail else "Internal Server Error",
                "status_code": 500,
            },
            status_code=500,
        )

    return app


app = create_app()
