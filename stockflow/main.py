import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockflow.api.errors import app_error_handler, unexpected_error_handler
from stockflow.api.routes.catalog import router as products_router
from stockflow.api.routes.directory import router as directory_router
from stockflow.api.routes.ledger import router as ledger_router
from stockflow.api.routes.orders import router as orders_router
from stockflow.api.routes.reports import router as reports_router
from stockflow.core.config import settings
from stockflow.core.errors import AppError
from stockflow.core.logging import setup_logging
from stockflow.db.database import Base, engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(settings.log_level, settings.log_json)
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("database tables ensured")
    logger.info("%s started", settings.app_name)
    yield
    logger.info("%s stopped", settings.app_name)


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(Exception, unexpected_error_handler)
app.include_router(directory_router)
app.include_router(products_router)
app.include_router(orders_router)
app.include_router(ledger_router)
app.include_router(reports_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
