import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from careerly.api.routes import health, plans, transactions, usage
from careerly.core import config
from careerly.core.logging_config import setup_logging

setup_logging(log_level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.RUN_MIGRATIONS:
        from careerly.db.migrate import run_migrations
        run_migrations()
    else:
        from careerly.db.init_db import init_db
        init_db()
    logger.info("Careerly API started")
    yield


# ============================================
# FASTAPI APP INIT
# ============================================

app = FastAPI(title="Careerly API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# REGISTER ALL ROUTERS
# ============================================

app.include_router(health.router)
app.include_router(plans.router)
app.include_router(transactions.router)
app.include_router(usage.router)


@app.get("/")
def root():
    return {"status": "Careerly API running"}
