from contextlib import asynccontextmanager
import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from approvalgrid.delivery.config.settings import settings
from approvalgrid.delivery.security.auth import AuthMiddleware

from approvalgrid.delivery.api.routes.dispatch import router as dispatch_router
from approvalgrid.delivery.api.routes.meta import router as meta_router
from approvalgrid.delivery.api.routes.publish import router as publish_router

from approvalgrid.delivery.api.routes.admin import admin_routers

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: warn about missing outbound configuration."""
    if not settings.NOTIFY_WEBHOOK_URL:
        logger.warning(
            "NOTIFY_WEBHOOK_URL not set – dispatch relies on system_settings"
        )
    if not settings.API_TOKEN:
        logger.warning("API_TOKEN not set – inbound triggers are unauthenticated")
    yield


def create_app(api_token: str | None = None) -> FastAPI:

    load_dotenv()
    configure_logging()

    app = FastAPI(title="delivery-pipeline-api", version="0.1.0", lifespan=lifespan)

    app.add_middleware(AuthMiddleware, token=api_token)

    app.include_router(dispatch_router)
    app.include_router(publish_router)
    app.include_router(meta_router)

    for ar in admin_routers:
        app.include_router(ar)

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
