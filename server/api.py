"""HTTP surface for Sitescribe: health, pricing quotes and documentation runs."""

import datetime
import logging
from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from config.settings import Settings
from observability.logging import setup_logging_from_settings
from observability.prometheus_metrics import setup_prometheus_metrics
from pipelines.fetcher import PageFetcher
from pipelines.security import SSRFError
from pricing.estimator import ComplexityEstimator
from storage.documents import DocumentStore, SQLDocumentStore
from synthesis.llm import GenerativeClient
from synthesis.orchestrator import SynthesisError
from synthesis.pipeline import DocumentationPipeline

logger = logging.getLogger(__name__)

app = FastAPI(title="Sitescribe API", version="0.1.0")
setup_prometheus_metrics(app)


class AnalyzeRequest(BaseModel):
    url: Optional[str] = None


class GenerateRequest(BaseModel):
    url: Optional[str] = None
    user_id: Optional[str] = None


class GenerateResponse(BaseModel):
    document_id: int
    title: str
    research_stats: dict


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache()
def _default_store() -> DocumentStore:
    return SQLDocumentStore(get_settings().database_url)


def get_store() -> DocumentStore:
    return _default_store()


async def get_estimator(settings: Settings = Depends(get_settings)) -> AsyncGenerator[ComplexityEstimator, None]:
    fetcher = PageFetcher(request_timeout=settings.request_timeout)
    try:
        yield ComplexityEstimator(fetcher=fetcher, settings=settings)
    finally:
        await fetcher.close()


async def get_pipeline(settings: Settings = Depends(get_settings),
                       store: DocumentStore = Depends(get_store)) -> AsyncGenerator[DocumentationPipeline, None]:
    pipeline = DocumentationPipeline(
        fetcher=PageFetcher(request_timeout=settings.request_timeout),
        client=GenerativeClient(settings),
        store=store,
        settings=settings,
    )
    try:
        yield pipeline
    finally:
        await pipeline.close()


@app.on_event("startup")
async def startup_event():
    settings = get_settings()
    setup_logging_from_settings(settings)
    logger.info("Sitescribe API started")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/analyze-complexity")
async def analyze_complexity(req: AnalyzeRequest, estimator: ComplexityEstimator = Depends(get_estimator)):
    if not req.url:
        raise HTTPException(status_code=400, detail="URL is required")
    try:
        quote = await estimator.analyze(req.url)
    except SSRFError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid URL: {e}")

    return {
        "success": True,
        "url": req.url,
        "analysis": quote.complexity_factors.model_dump(),
        "quote": quote.model_dump(),
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


@app.post("/generate", response_model=GenerateResponse)
async def generate(req: GenerateRequest, pipeline: DocumentationPipeline = Depends(get_pipeline)):
    if not req.url:
        raise HTTPException(status_code=400, detail="URL is required")
    try:
        result = await pipeline.run(req.url, user_id=req.user_id)
    except SSRFError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SynthesisError as e:
        raise HTTPException(status_code=502, detail={"stage": e.stage, "message": e.message})

    return GenerateResponse(
        document_id=result.document_id,
        title=result.document.title,
        research_stats=result.document.research_stats,
    )
