import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes.distribution import router as distribution_router
from app.api.routes.inventory import router as inventory_router
from app.core.config import settings
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    logger.info(
        "service starting",
        extra={
            "default_multiple": settings.distribution_default_multiple,
            "default_priority_percentage": settings.distribution_default_priority_percentage,
        },
    )
    yield
    logger.info("service stopped")


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(inventory_router)
app.include_router(distribution_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
