from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from splitline.api.routes import candidate_sourcer_router, company_sourcer_router
from splitline.api.routes import router as placement_router
from splitline.api.schemas import ErrorBody, ErrorResponse
from splitline.config import get_settings
from splitline.db.init import init_database
from splitline.errors import SplitlineError
from splitline.logging_config import configure_logging

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg', 'invalid value')}" if location else error.get("msg", ""))
    return "; ".join(parts) or "invalid request"


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(SplitlineError)
    async def _domain_error(request: Request, exc: SplitlineError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed path=%s error=%s", request.url.path, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, _describe_validation_error(exc))

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(placement_router)
    app.include_router(company_sourcer_router)
    app.include_router(candidate_sourcer_router)
    return app
