"""FastAPI app for the LMS Assessment Service.

- /assessment/evaluate, /assessment/aggregate: stateless scoring
- /quizzes...: quiz and question authoring, lifecycle, reports
- /attempts...: start, submit and review quiz attempts
- /health, /metrics: liveness and Prometheus exposition
"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from packages.common.config import get_settings
from packages.common.logging import configure_logging
from packages.common.tracing import trace_middleware
from . import metrics
from .errors import AssessmentError
from .repo import init_db
from .routes import router as assessment_router

log = logging.getLogger(__name__)

app = FastAPI(title="LMS Assessment Service", version="1.0.0")
app.middleware("http")(trace_middleware)
app.include_router(assessment_router)


@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError) -> JSONResponse:
    """Render domain errors as `{"detail": ...}` with their HTTP status."""
    log.info(f"{type(exc).__name__}: {exc.detail} [{request.method} {request.url.path}]")
    metrics.mark_error(type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health", tags=["system"])
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics", tags=["system"])
def prometheus_metrics() -> PlainTextResponse:
    data = generate_latest()
    return PlainTextResponse(data.decode("utf-8"), media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
async def _init() -> None:
    """Configure logging and create the schema at application startup."""
    configure_logging(get_settings().LOG_LEVEL)
    await init_db()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("services.assessment.app:app", host="0.0.0.0", port=8000)
