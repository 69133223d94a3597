"""
Engine Dependency

Application-wide engine instance injected into the endpoints.
"""

from bluetrust.config import EngineSettings
from bluetrust.engine import BlueTrustEngine


# Singleton instance for application-wide use
_engine: BlueTrustEngine | None = None


def get_engine() -> BlueTrustEngine:
    """
    Get global engine instance

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(engine: BlueTrustEngine = Depends(get_engine)):
            ...

    Returns:
        BlueTrustEngine singleton
    """
    global _engine
    if _engine is None:
        _engine = BlueTrustEngine(EngineSettings())
    return _engine


def reset_engine(engine: BlueTrustEngine | None = None) -> None:
    """Replace (or drop) the global engine instance"""
    global _engine
    _engine = engine
