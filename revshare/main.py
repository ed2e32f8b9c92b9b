import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from revshare import containers
from revshare.config import settings
from revshare.core.exception_handlers import (
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from revshare.core.exceptions import BaseAPIException
from revshare.core.logging_middleware import LoggingMiddleware
from revshare.logging_config import setup_logging
from revshare.routers import (
    earnings_router,
    health_router,
    revenue_router,
    settlement_router,
    smoobu_router,
)

load_dotenv("revshare/.env")
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router.router, prefix=settings.API_V1_STR)
    app.include_router(revenue_router.router, prefix=settings.API_V1_STR)
    app.include_router(earnings_router.router, prefix=settings.API_V1_STR)
    app.include_router(earnings_router.owner_router, prefix=settings.API_V1_STR)
    app.include_router(settlement_router.router, prefix=settings.API_V1_STR)
    app.include_router(smoobu_router.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
