"""
Regional Surveillance Service - FastAPI Application

Endpoints:
- POST /v1/surveillance/analyze   run a surveillance analysis
- POST /v1/surveillance/report    download a stored analysis as PDF
- POST /v1/surveillance/context   prompt context block for an analysis
- GET  /health                    liveness and registered sources
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from surveillance import __version__
from surveillance.config import SurveillanceSettings
from surveillance.core.adapters import AdapterRegistry, default_adapters
from surveillance.core.augmenter import build_surveillance_context
from surveillance.core.cache import build_cache
from surveillance.core.region import RegionResolver, ZipDirectory
from surveillance.core.types import TrendAnalysisResult
from surveillance.models import (
    AnalysisDocument,
    AnalyzeRequest,
    ContextRequest,
    ContextResponse,
    HealthResponse,
    ReportRequest,
)
from surveillance.services import (
    DiskAnalysisStore,
    InMemoryAnalysisStore,
    TrendAnalysisService,
    collaborators_from_dev_users,
)
from surveillance.utils import InvalidRequestError, SurveillanceError, get_logger, setup_logging

logger = get_logger(__name__)


def _error_details(errors) -> List[Dict[str, Any]]:
    """JSON-safe subset of pydantic error entries."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in errors
    ]


def build_service(settings: SurveillanceSettings, client: httpx.AsyncClient) -> TrendAnalysisService:
    """Wire the analysis service from settings around a shared HTTP client."""
    cache = build_cache(settings.cache_backend, settings.cache_dir)
    registry = AdapterRegistry(
        default_adapters(client, cache, base_url=settings.cdc_base_url),
        adapter_timeout=settings.adapter_timeout_seconds,
        overall_timeout=settings.fetch_all_timeout_seconds,
    )
    identity, plans = collaborators_from_dev_users(settings.dev_users)
    store = DiskAnalysisStore(settings.store_dir) if settings.store_dir else InMemoryAnalysisStore()
    resolver = RegionResolver(ZipDirectory(path=settings.zip_directory_path))
    return TrendAnalysisService(
        registry=registry,
        identity=identity,
        plans=plans,
        store=store,
        resolver=resolver,
    )


def create_app(
    settings: Optional[SurveillanceSettings] = None,
    service: Optional[TrendAnalysisService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Passing ``service`` skips the default wiring (tests inject one built
    around mock transports).
    """
    settings = settings or SurveillanceSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Service lifecycle: the HTTP client and disk backends built here are closed on shutdown."""
        setup_logging(settings.log_level, settings.log_file)
        client: Optional[httpx.AsyncClient] = None
        if service is not None:
            app.state.service = service
        else:
            client = httpx.AsyncClient(timeout=settings.adapter_timeout_seconds)
            app.state.service = build_service(settings, client)
        logger.info("Surveillance API ready to accept requests")
        yield
        if client is not None:
            try:
                app.state.service.close()
            finally:
                await client.aclose()
        logger.info("Surveillance API shut down.")

    app = FastAPI(
        title="Regional Surveillance API",
        description="Regional epidemiological surveillance correlation for clinical documentation",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.started_at = datetime.now(timezone.utc)
    if service is not None:
        app.state.service = service

    # ---- Error handlers ----

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": _error_details(exc.errors())},
        )

    @app.exception_handler(SurveillanceError)
    async def surveillance_error_handler(request: Request, exc: SurveillanceError):
        if exc.status_code >= 500:
            logger.error(f"{request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal error"})

    # ---- Routes ----

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        svc: TrendAnalysisService = request.app.state.service
        now = datetime.now(timezone.utc)
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=now.isoformat(),
            uptime_seconds=(now - request.app.state.started_at).total_seconds(),
            sources=[adapter.name for adapter in svc.registry.adapters],
        )

    @app.post("/v1/surveillance/analyze", tags=["Surveillance"])
    async def analyze(body: AnalyzeRequest, request: Request):
        """
        Correlate regional surveillance data with a clinical presentation.

        Failed data sources do not fail the request; their messages are
        returned as ``warnings``.
        """
        svc: TrendAnalysisService = request.app.state.service
        analysis, warnings = await svc.analyze(
            user_id_token=body.user_id_token,
            chief_complaint=body.chief_complaint,
            differential=body.differential,
            zip_code=body.location.zip_code,
            state=body.location.state,
        )
        payload = {"ok": True, "analysis": analysis.to_dict()}
        if warnings:
            payload["warnings"] = warnings
        return payload

    @app.post("/v1/surveillance/report", tags=["Surveillance"])
    async def report(body: ReportRequest, request: Request):
        """Download a stored analysis as a PDF (owner only, PDF-export plans)."""
        svc: TrendAnalysisService = request.app.state.service
        filename, pdf = await svc.report(body.user_id_token, str(body.analysis_id))
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/v1/surveillance/context", response_model=ContextResponse, tags=["Surveillance"])
    async def context(body: ContextRequest):
        """Render the prompt context block for an analysis document."""
        if body.analysis is None:
            return ContextResponse(context="")
        try:
            document = AnalysisDocument.model_validate(body.analysis)
        except ValidationError as e:
            raise InvalidRequestError(details={"analysis": _error_details(e.errors())}) from e
        analysis = TrendAnalysisResult.from_dict(document.to_wire())
        return ContextResponse(context=build_surveillance_context(analysis, body.differential))

    return app


app = create_app()


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
