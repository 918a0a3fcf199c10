import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from docsentry import __version__
from docsentry.config import get_settings
from docsentry.core.scanner import CorpusScanner
from docsentry.schemas.scan import ScanSummary

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="DocSentry",
    description="Resumable sensitive-data scanner for local document corpora",
    version=__version__,
    docs_url="/v1/docs",
    openapi_url="/v1/openapi.json",
)

app.state.scanner = None
app.state.scan_summary = ScanSummary()


@app.get("/healthz", tags=["health"])
async def health_check() -> JSONResponse:
    return JSONResponse({"status": "ok"})


@app.get("/v1/scan/summary", response_model=ScanSummary, tags=["scan"])
async def scan_summary() -> ScanSummary:
    return app.state.scan_summary


@app.on_event("startup")
async def startup_event() -> None:
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("DocSentry starting up: corpus=%s", settings.local_dir)

    app.state.scanner = CorpusScanner.from_settings(settings)
    if settings.scan_on_startup:
        report = await app.state.scanner.scan_all()
        app.state.scan_summary = ScanSummary.from_report(report)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if app.state.scanner is not None:
        app.state.scanner.close()
        logger.info("Extractor thread pool closed")
    logger.info("DocSentry shutting down")
