# FilmGear Booking - Film Equipment Booking and Inventory System
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from filmgear import __version__
from filmgear.config import get_settings, init_settings
from filmgear.database import init_database
from filmgear.errors import AppError, error_body, error_kind_for_status
from filmgear.routes import api_router

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Configure root logging once for the process."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.app.debug else logging.INFO,
        format=LOG_FORMAT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = init_settings()
    configure_logging()

    logger.info("Starting FilmGear Booking v%s", __version__)

    try:
        init_database()
    except (SQLAlchemyError, OSError) as e:
        if not settings.app.is_development:
            raise
        # Development login still works without a database
        logger.warning("Database unavailable, continuing without it: %s", e)

    yield

    logger.info("FilmGear Booking stopped")


def validation_errors(exc: RequestValidationError) -> list:
    """Flatten pydantic errors into field/message pairs."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the common error envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        extra = {}
        if isinstance(detail, dict):
            extra = {k: v for k, v in detail.items() if k != "message"}
            message = detail.get("message", "Request failed")
        elif exc.status_code == 404 and detail == "Not Found":
            message = "Route not found"
        else:
            message = str(detail)

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, error_kind_for_status(exc.status_code), **extra),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_body("Validation failed", "validation_error", validation_errors(exc)),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)

        extra = {}
        if get_settings().app.debug:
            extra = {"detail": str(exc), "type": type(exc).__name__}

        return JSONResponse(
            status_code=500,
            content=error_body("Something went wrong!", "server_error", **extra),
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FilmGear Booking",
        description="Film equipment booking and inventory service",
        version=__version__,
        license_info={
            "name": "AGPL-3.0-or-later",
            "url": "https://www.gnu.org/licenses/agpl-3.0.html",
        },
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.app.debug else settings.app.cors_origins,
        allow_credentials=not settings.app.debug,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    register_exception_handlers(app)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "OK",
            "message": "FilmGear Booking API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "filmgear.main:app",
        host=settings.app.host,
        port=settings.app.port,
        reload=settings.app.debug,
    )
