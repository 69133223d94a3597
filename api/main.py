import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI
from fastapi.responses import HTMLResponse


# Load environment variables from .env file
PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
load_dotenv(ENV_FILE)

from api.config import settings  # noqa: E402
from api.dependencies.engine import get_engine  # noqa: E402
from api.routers.api_v1.api import api_router  # noqa: E402
from api.utils.security import generate_api_key  # noqa: E402


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the engine on startup so configuration errors fail fast.
    """
    engine = get_engine()

    logger.info(f"Starting {settings.api_title} v{settings.api_version} ({settings.environment})")
    logger.info(
        f"Oracle backend: {engine.settings.oracle_backend.value}, "
        f"anchor backend: {engine.settings.anchor_backend.value}"
    )
    if settings.verifier_api_key == "default_verifier_key_change_in_production" and settings.is_production:
        logger.warning("Verifier API key is the default value")
    logger.info(f"API Documentation: http://127.0.0.1:{settings.api_port}/docs")

    yield  # Application runs here

    logger.info("Shutting down API")


app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    contact=settings.contact,
    lifespan=lifespan,
)

root_router = APIRouter()


@root_router.get("/")
async def root():
    """Basic HTML response."""
    body = (
        "<html>"
        "<body style='padding: 10px;'>"
        "<h1>Welcome to the BlueTrust Registry API</h1>"
        "<div>"
        "Check the docs: <a href='/docs'>here</a>"
        "</div>"
        "</body>"
        "</html>"
    )

    return HTMLResponse(content=body)


@root_router.get("/generate-api-key")
async def get_new_api_key():
    api_key = generate_api_key()

    return {"api_key": api_key}


@root_router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        - status: "healthy"
        - api_version: API version
        - environment: Current environment
        - engine: Configured backends and ledger size
    """
    engine = get_engine()
    return {
        "status": "healthy",
        "api_version": settings.api_version,
        "environment": settings.environment,
        "engine": {
            "oracle_backend": engine.settings.oracle_backend.value,
            "anchor_backend": engine.settings.anchor_backend.value,
            "ledger_entries": len(engine.ledger.entries),
            "anchor_failures": len(engine.ledger.anchor_failures),
        },
    }


app.include_router(root_router)
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.is_development,
    )
