"""
REST API Server for content enhancement.

Exposes the enhancement pipeline, adapter health and stored
configuration over HTTP.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from services.bootstrap.enhancement_service import EnhancementService, settings_from_env
from services.pipeline.exceptions import ConfigurationError, PipelinePartialFailure
from services.pipeline.schemas import PIPELINE_VERSION, AdventurePrompt, PipelineConfig

logger = logging.getLogger(__name__)

# Global instances
service: EnhancementService | None = None


class EnhanceRequest(BaseModel):
    """Body of POST /enhance"""

    content: Any = Field(..., description="Generated content to enhance")
    context: AdventurePrompt | str | None = None
    config: dict[str, Any] | None = Field(
        None, description="Pipeline config; stored or default config when omitted"
    )
    user_id: str | None = None
    session_id: str | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI"""
    global service

    # Startup
    logger.info("Starting Content Enhancement REST API server...")
    settings, backend_url, api_key = settings_from_env()
    service = EnhancementService(settings=settings, backend_url=backend_url, api_key=api_key)
    try:
        await service.start()
    except Exception as e:
        logger.error(f"Failed to start enhancement service: {e}")
        raise
    logger.info("REST API server ready")

    yield

    # Shutdown
    logger.info("Shutting down REST API server...")
    if service:
        await service.stop()
    service = None
    logger.info("REST API server stopped")


app = FastAPI(
    title="Content Enhancement API",
    description="REST API for the content enhancement pipeline",
    version=PIPELINE_VERSION,
    lifespan=lifespan,
)


def _require_service() -> EnhancementService:
    if not service or not service.orchestrator:
        raise HTTPException(status_code=503, detail="Enhancement service not available")
    return service


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Content Enhancement API",
        "version": PIPELINE_VERSION,
        "endpoints": {
            "/enhance": "POST - Run the enhancement pipeline",
            "/adapters": "GET - List registered adapters",
            "/adapters/health": "GET - Adapter health",
            "/adapters/metrics": "GET - Adapter execution metrics",
            "/pipeline/health": "GET - Stage availability and recommendations",
            "/config": "GET/PUT - Stored pipeline configuration",
            "/history": "GET - Quality history and statistics",
            "/health": "GET - Health check",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    store_health = (
        await service.store.health_check()
        if service and service.store and service.store.conn
        else {"status": "disconnected"}
    )
    return {
        "status": "healthy" if service and service.ready else "degraded",
        "store": store_health["status"],
        "service": "enhancement-api",
    }


@app.post("/enhance")
async def enhance(request: EnhanceRequest):
    """
    Run the enhancement pipeline.

    Returns:
        Enhancement with quality metrics, grade and processing report
    """
    svc = _require_service()
    try:
        enhancement = await svc.enhance(
            request.content,
            request.context,
            config=request.config,
            user_id=request.user_id,
            session_id=request.session_id,
        )
        return JSONResponse(
            status_code=200,
            content=enhancement.model_dump(mode="json"),
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except PipelinePartialFailure as e:
        return JSONResponse(
            status_code=409,
            content={"detail": str(e), "report": e.report.model_dump(mode="json")},
        )
    except Exception as e:
        logger.error(f"Error running pipeline: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/adapters")
async def list_adapters():
    """List registered adapters."""
    svc = _require_service()
    descriptors = svc.registry.descriptors()
    return {
        "adapters": [d.model_dump(mode="json") for d in descriptors],
        "count": len(descriptors),
    }


@app.get("/adapters/health")
async def adapters_health():
    """Health summary plus per-adapter status."""
    svc = _require_service()
    return {
        "summary": svc.health_service.get_health_summary(),
        "adapters": {
            name: status.model_dump(mode="json")
            for name, status in svc.registry.health_snapshot().items()
        },
    }


@app.get("/adapters/metrics")
async def adapters_metrics():
    """Execution metrics per adapter."""
    svc = _require_service()
    return {
        name: metrics.model_dump(mode="json")
        for name, metrics in svc.registry.metrics_snapshot().items()
    }


@app.get("/pipeline/health")
async def pipeline_health():
    """Stage availability and recommendations."""
    svc = _require_service()
    return await svc.orchestrator.get_pipeline_health()


@app.get("/config")
async def get_config(user_id: str | None = None):
    """Stored config for a user, or the defaults."""
    svc = _require_service()
    config = await svc.resolve_config(None, user_id)
    return {"config": config.model_dump(mode="json"), "user_id": user_id}


@app.put("/config")
async def put_config(body: dict[str, Any], user_id: str | None = None):
    """Validate and store a config."""
    svc = _require_service()
    try:
        config = PipelineConfig.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if not await svc.store.save_config(config, user_id):
        raise HTTPException(status_code=500, detail="Failed to save configuration")
    return {"status": "success", "config": config.model_dump(mode="json")}


@app.get("/history")
async def history(user_id: str | None = None, limit: int = Query(50, ge=1, le=500)):
    """Quality history, newest first, with statistics."""
    svc = _require_service()
    entries = await svc.store.list_quality_history(user_id, limit=limit)
    statistics = await svc.store.get_quality_statistics(user_id)
    return {
        "entries": [entry.model_dump(mode="json") for entry in entries],
        "statistics": statistics.model_dump(mode="json"),
    }


def main():
    """Run the REST API server"""
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8080,
        log_level="info",
    )


if __name__ == "__main__":
    main()
