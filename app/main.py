"""
PediBrief - FastAPI Application

Backend for the PediBrief wizard: simplifies pediatric discharge
summaries for parents, scores the comprehension quiz, exports a PDF
care summary and emails quiz results to the clinician.

IMPORTANT: PediBrief rewrites the clinician's words; it adds no
medical facts of its own.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.routes import router
from app.api.middleware import (
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    setup_rate_limiting
)
from app.utils.logger import get_logger, configure_logging

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    logger.info(
        "Starting PediBrief",
        version=settings.app_version,
        debug=settings.debug,
        llm_configured=settings.gemini_configured,
        email_configured=settings.gmail_configured
    )

    if not settings.gemini_configured:
        logger.warning("GEMINI_API_KEY is not set; /summarize will return 503")

    yield

    logger.info("Shutting down PediBrief")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## PediBrief - Pediatric Discharge Summary Simplifier

Rewrites a pediatric discharge summary into a clear explanation for
parents, quizzes them on the safety-critical points and produces a
printable care summary.

### ⚠️ Important

- Uses only facts present in the discharge summary
- Removes names, dates of birth and record numbers
- Nothing is stored; every request stands alone

### API Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/summarize` | POST | Simplify a discharge summary |
| `/quiz/score` | POST | Score a multiple-choice quiz |
| `/quiz/recall-questions` | POST | Free-text questions from a summary |
| `/quiz/grade-answer` | POST | Grade a free-text answer |
| `/quiz/recall-score` | POST | Score graded free-text answers |
| `/export-pdf` | POST | Download the care summary PDF |
| `/send-doctor-email` | POST | Email quiz results to the clinician |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup middleware (order matters - last added is outermost)

    app.add_middleware(ErrorHandlingMiddleware)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_rate_limiting(app)

    app.include_router(router, tags=["API"])

    return app


# Create app instance
app = create_app()


# Run with: uvicorn app.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
