# 数据抓取管理路由
"""
数据抓取管理 API
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from oncodata.ingestion import ScrapingService, UnknownSourceError
from oncodata.models import ScrapingResult
from oncodata.utils import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ==================== 响应模型 ====================

class ScrapingRunResponse(BaseModel):
    """抓取日志响应"""
    id: str
    source: str
    status: str
    items_processed: int
    items_added: int
    items_updated: int
    items_failed: int
    duration_ms: int
    error_message: str | None = None
    created_at: str


class SourcesResponse(BaseModel):
    """数据源列表响应"""
    sources: list[str]


def get_scraping_service(request: Request) -> ScrapingService:
    """从应用状态获取抓取服务"""
    service = getattr(request.app.state, "scraping_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Scraping service not initialized")
    return service


# ==================== 抓取 API ====================

@router.get("/sources", response_model=SourcesResponse)
async def list_sources(service: ScrapingService = Depends(get_scraping_service)):
    """已配置的数据源"""
    return SourcesResponse(sources=service.sources)


@router.post("/run", response_model=list[ScrapingResult])
async def run_scraping(
    source: str | None = Query(None, description="只运行指定数据源"),
    service: ScrapingService = Depends(get_scraping_service),
):
    """立即运行数据抓取"""
    if source is None:
        return await service.run_all_scraping()
    
    try:
        return [await service.run_source(source)]
    except UnknownSourceError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/runs", response_model=list[ScrapingRunResponse])
async def list_runs(
    limit: int = Query(20, ge=1, le=200),
    source: str | None = None,
    service: ScrapingService = Depends(get_scraping_service),
):
    """最近的抓取日志"""
    try:
        runs = await service.recent_runs(limit=limit, source=source)
    except Exception as e:
        logger.error(f"List scraping runs failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    
    return [
        ScrapingRunResponse(
            id=run.id,
            source=run.source,
            status=run.status.value,
            items_processed=run.items_processed,
            items_added=run.items_added,
            items_updated=run.items_updated,
            items_failed=run.items_failed,
            duration_ms=run.duration_ms,
            error_message=run.error_message,
            created_at=run.created_at.isoformat(),
        )
        for run in runs
    ]
