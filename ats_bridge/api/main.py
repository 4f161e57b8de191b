"""
FastAPI Main Application
ATS Bridge - resume analysis and rewriting API
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ats_bridge.api.routes import analysis, health, sessions
from ats_bridge.api.middleware.logging import LoggingMiddleware
from ats_bridge.api.middleware.rate_limit import RateLimitMiddleware
from ats_bridge.api.middleware.error_handler import (
    ats_bridge_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler
)
from ats_bridge.utils.config import settings
from ats_bridge.utils.logger import get_logger
from ats_bridge.utils.exceptions import ATSBridgeException

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager
    Handles startup and shutdown events
    """
    logger.info("=" * 70)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Delegate: {settings.AI_PROVIDER} / {settings.active_model_name}")

    if settings.active_credential is None:
        # requests still reach the routes and fail with MissingCredentialError
        logger.warning(f"{settings.active_credential_name} is not set; analyses will fail until it is configured")

    logger.info(f"API ready at http://{settings.HOST}:{settings.PORT}")
    logger.info(f"Docs available at http://{settings.HOST}:{settings.PORT}/docs")
    logger.info("=" * 70)

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
# ATS Bridge API

Analyze a resume against an Applicant Tracking System, rewrite it for impact
and export the result as a PDF.

## Features
- **Analysis**: structured extraction of personal info, education, experience,
  skills and certifications, plus match/impact scores, keyword and skill gaps,
  formatting issues and annotated critiques
- **Specific vs generalized mode**: supply a job description to score against
  a particular role
- **Rectify**: rewrite summary and experience bullets (Action -> Result) while
  keeping every role, and inject missing keywords
- **Sessions**: a guided analyze -> edit -> rectify -> export workflow
- **Export**: download the draft as an A4 PDF

## API Endpoints
- `POST /api/v1/analyze`, `POST /api/v1/analyze/upload`
- `POST /api/v1/rectify`
- `POST /api/v1/export`
- `POST /api/v1/sessions` and `/api/v1/sessions/{id}/...`
- `GET /api/v1/health`

## Usage Example
```python
import httpx

with open("resume.pdf", "rb") as f:
    response = httpx.post(
        "http://localhost:8000/api/v1/analyze/upload",
        files={"file": f},
        data={"job_description": "Senior Python engineer, Kubernetes, AWS"},
        timeout=300,
    )

result = response.json()
print(result["match_score"], result["missing_keywords"])
```
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.DEBUG
)

def configure_middleware(application: FastAPI, rate_limit: bool) -> None:
    """
    Register middleware; the last one added is the outermost.

    LoggingMiddleware wraps the rate limiter so 429 answers are logged too.
    """
    # CORS Middleware - Allow all origins in development
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.CORS_ORIGINS,
        allow_credentials=False if settings.is_development else settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )

    if rate_limit:
        application.add_middleware(
            RateLimitMiddleware,
            requests=settings.RATE_LIMIT_REQUESTS,
            period=settings.RATE_LIMIT_PERIOD
        )

    application.add_middleware(LoggingMiddleware)


configure_middleware(app, rate_limit=settings.RATE_LIMIT_ENABLED)

# Exception Handlers
app.add_exception_handler(ATSBridgeException, ats_bridge_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include Routers
app.include_router(health.router, prefix=settings.API_V1_PREFIX)
app.include_router(analysis.router, prefix=settings.API_V1_PREFIX)
app.include_router(sessions.router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """API info"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": f"{settings.API_V1_PREFIX}/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ats_bridge.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=settings.WORKERS if not settings.RELOAD else 1,
        log_level=settings.LOG_LEVEL.lower()
    )
