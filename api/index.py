from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, Query
from fastapi.responses import ORJSONResponse
from mangum import Mangum

from meeplenews.config import get_settings
from meeplenews.http_client import shutdown_http_client
from meeplenews.logging import configure_logging
from meeplenews.models import Article
from meeplenews.services import NewsPipeline, build_pipeline

configure_logging(get_settings().log_level)

app = FastAPI(
    title="MeepleNews",
    version="0.1.0",
    description="Ranked board-game news discovered through web search providers.",
    default_response_class=ORJSONResponse,
)


@lru_cache
def get_pipeline() -> NewsPipeline:
    # one pipeline per process: quotas, cache and the in-flight guard are shared
    return build_pipeline(get_settings())


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/news", tags=["news"], response_model=list[Article])
async def news(
    scheduled: bool = Query(
        False, description="Use the scheduled (wider) time window instead of on-demand"
    ),
    pipeline: NewsPipeline = Depends(get_pipeline),
):
    return await pipeline.get_board_game_news(is_scheduled=scheduled)


@app.get("/search/stats", tags=["search"])
async def search_stats(pipeline: NewsPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    if pipeline.orchestrator is None:
        return {"router": None, "searches": None}
    return {
        "router": pipeline.orchestrator.router.usage_stats(),
        "searches": pipeline.orchestrator.stats.as_dict(),
    }


@app.get("/search/health", tags=["search"])
async def search_health(pipeline: NewsPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    if pipeline.orchestrator is None:
        return {"overall_status": "error", "providers": {}}
    return await pipeline.orchestrator.router.health_check()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await shutdown_http_client()


handler = Mangum(app)
