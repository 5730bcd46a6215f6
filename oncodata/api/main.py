# FastAPI 应用入口
"""
oncodata 管理 API 服务
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from oncodata.config import Settings, get_settings
from oncodata.ingestion import ScrapingScheduler, build_scraping_service
from oncodata.storage import Neo4jStore, create_store, init_neo4j_schema
from oncodata.utils import get_logger, setup_logging

from .routes import scraping

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)
    logger.info("Starting oncodata API...", environment=settings.environment)
    
    store = create_store(settings)
    try:
        await store.connect()
        if isinstance(store, Neo4jStore):
            await init_neo4j_schema(store)
        logger.info(f"Storage initialized: {settings.storage.backend}")
    except Exception as e:
        logger.warning(f"Storage initialization failed: {e}")
    
    service = build_scraping_service(store, settings.scraper)
    app.state.scraping_service = service
    
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = ScrapingScheduler(
            service,
            interval_hours=settings.scheduler.interval_hours,
            run_on_start=settings.scheduler.run_on_start,
        )
        await scheduler.start()
    app.state.scheduler = scheduler
    
    yield
    
    # 关闭
    logger.info("Shutting down oncodata API...")
    if scheduler:
        await scheduler.stop()
    await service.close()
    try:
        await store.close()
    except Exception as e:
        logger.warning(f"Storage close failed: {e}")


def create_app(settings: Settings | None = None) -> FastAPI:
    """创建 FastAPI 应用"""
    settings = settings or get_settings()
    
    app = FastAPI(
        title="oncodata API",
        description="肿瘤药物与临床研究数据抓取管理 API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    
    # 配置 CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # 注册路由
    app.include_router(scraping.router, prefix="/api/v1/scraping", tags=["Scraping"])
    
    @app.get("/health")
    async def health_check(request: Request):
        """健康检查"""
        scheduler = getattr(request.app.state, "scheduler", None)
        service = getattr(request.app.state, "scraping_service", None)
        return {
            "status": "ok" if service is not None else "starting",
            "environment": settings.environment,
            "storage": settings.storage.backend,
            "sources": service.sources if service else [],
            "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        }
    
    return app


def run(settings: Settings | None = None):
    """启动 API 服务"""
    settings = settings or get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
    )


if __name__ == "__main__":
    run()
