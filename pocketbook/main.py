from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncGenerator
from urllib.parse import urlencode

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi_pagination import add_pagination
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from pocketbook.api import router
from pocketbook.exceptions import PocketbookError
from pocketbook.services.util import initialize_services, teardown_services

# query parameters that accept comma separated lists (?status=ATIVA,VENCIDA)
LIST_QUERY_PARAMS = frozenset({"status"})


def get_lifespan():
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        try:
            logger.info("app start running")
            await initialize_services()
            yield
        except Exception as exc:
            logger.exception(exc)
            raise
        finally:
            await teardown_services()
            await logger.complete()

    return lifespan


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def create_app() -> FastAPI:
    app = FastAPI(
        title="pocketbook",
        lifespan=get_lifespan(),
    )

    origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PocketbookError)
    async def pocketbook_error_handler(_request: Request, exc: PocketbookError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={"message": _validation_message(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(Exception)
    async def exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )

    @app.middleware("http")
    async def flatten_query_string_lists(request: Request, call_next):
        flattened: list[tuple[str, str]] = []
        for key, value in request.query_params.multi_items():
            if key in LIST_QUERY_PARAMS:
                flattened.extend((key, entry) for entry in value.split(","))
            else:
                flattened.append((key, value))

        request.scope["query_string"] = urlencode(flattened, doseq=True).encode("utf-8")

        return await call_next(request)

    app.include_router(router)

    add_pagination(app)

    return app
