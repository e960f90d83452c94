import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes.episodes import router as episodes_router
from src.api.routes.search import router as search_router
from src.errors import PipelineError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Episode Catalog API",
    description="Video episode processing and transcript search",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(episodes_router)
app.include_router(search_router)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Retryable failures map to 503, permanent ones to 422."""
    status_code = 503 if exc.retryable else 422
    logger.warning("%s %s failed (%d): %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "stage": exc.stage, "retryable": exc.retryable},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
