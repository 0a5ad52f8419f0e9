"""AgentCare 後台 API：責任區、請假代理、報修派工、年度維護合約、排程通知"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentcare.config import settings
from agentcare.exception_handlers import setup_exception_handlers
from agentcare.routers import (
    amc,
    auth,
    leaves,
    master,
    scheduler,
    service_requests,
    territory,
    zones,
)
from agentcare.services.scheduler import scheduler_service

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 正式環境或 SCHEDULER_ENABLED=true 才掛 cron；其餘只能手動觸發
    if settings.scheduler_active:
        scheduler_service.start()
    else:
        logger.info("Scheduler disabled (environment=%s)", settings.environment)
    yield
    scheduler_service.shutdown()


app = FastAPI(
    title=settings.app_name,
    description="AgentCare home / property services back office",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_exception_handlers(app)

app.include_router(auth.router)
app.include_router(territory.router)
app.include_router(master.router)
app.include_router(zones.router)
app.include_router(leaves.router)
app.include_router(service_requests.router)
app.include_router(amc.router)
app.include_router(scheduler.router)


@app.get("/health")
def health():
    return {"success": True, "data": {"status": "ok", "environment": settings.environment}}
