import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import WebhookError
from app.api.v1 import routes_health, routes_tickets, routes_webhook
from app.schemas.ticket_record import SHEET_HEADERS
from app.stores import get_sheet_store

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORE_BACKEND == "sql":
        from app.db import session
        await session.init_db()
    if await get_sheet_store().ensure_headers(SHEET_HEADERS):
        logger.info(f"Wrote header row to sheet {settings.SHEET_NAME}")
    yield
    if settings.TICKET_LOCK_ENABLED:
        from app.redis import close_redis
        await close_redis()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router, tag in ((routes_health.router, "health"),
                        (routes_webhook.router, "webhooks"),
                        (routes_tickets.router, "tickets")):
        app.include_router(router, prefix=API_PREFIX, tags=[tag])

    @app.exception_handler(WebhookError)
    async def webhook_error_handler(request, ex: WebhookError):
        if ex.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {ex.details}\n{ex.stack_trace or ''}")
        content = {"error": ex.message}
        if ex.details:
            content["details"] = ex.details
        return JSONResponse(status_code=ex.status_code, content=content)

    @app.get("/")
    def root():
        return {"message": "Universe ticket sync backend is running"}
    return app


app = create_app()
