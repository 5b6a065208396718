import time
import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from learning.core.config import Settings, settings as default_settings
from learning.core.logging import setup_logging, request_id_ctx
from learning.core.errors import LearningError, describe_schema_error
from learning.core.db import build_engine, build_sessionmaker, init_models
from learning.core.security import IdentityClient
from learning.api.router import api_router
from learning.platform.provider_registry import ProviderRegistry
from learning.modules.messaging.consumer import RedisStreamConsumer
from learning.modules.messaging.handlers import build_message_handlers

logger = logging.getLogger(__name__)


def create_app(settings: Settings = default_settings, registry: ProviderRegistry | None = None) -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    app.state.registry = registry or ProviderRegistry(settings)
    app.state.identity = IdentityClient(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        formatted_process_time = f"{process_time:.2f}ms"

        logger.info(
            f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {formatted_process_time}"
        )

        return response

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("x-request-id", "-")
        request_id_ctx.set(rid)
        response = await call_next(request)
        return response

    @app.exception_handler(LearningError)
    async def learning_error_handler(request: Request, exc: LearningError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        if any(err.get("loc", ("",))[0] == "path" for err in exc.errors()):
            return JSONResponse(status_code=400, content={"error": "Invalid ID format"})
        return JSONResponse(status_code=400, content={"error": describe_schema_error(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error"},
        )

    @app.on_event("startup")
    async def on_startup():
        await init_models(app.state.engine, settings)
        if settings.REDIS_URL:
            consumer = RedisStreamConsumer(
                app.state.registry.redis(),
                prefix=settings.REDIS_STREAM_PREFIX,
                queue=settings.SERVICE_QUEUE,
                group=settings.BUS_CONSUMER_GROUP,
                dispatch=_session_dispatch(app),
            )
            app.state.consumer_task = asyncio.create_task(consumer.run())

    @app.on_event("shutdown")
    async def on_shutdown():
        task = getattr(app.state, "consumer_task", None)
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Consumer task failed before shutdown")
        await app.state.identity.close()
        await app.state.registry.close()
        await app.state.engine.dispose()

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


def _session_dispatch(app: FastAPI):
    """Each inbound message is handled in its own database session."""
    async def dispatch(operation_id: str, message) -> bool:
        async with app.state.sessionmaker() as session:
            handlers = build_message_handlers(session, app.state.registry, app.state.settings)
            return await handlers.dispatch(operation_id, message)
    return dispatch


app = create_app()
