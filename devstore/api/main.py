"""
Minimal FastAPI host for the local storage router.
The surrounding application normally mounts the router itself.
"""

from fastapi import FastAPI
from pydantic import BaseModel

from ..core.config import VERSION, debug_enabled
from ..services import LocalServices


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    project_path: str


def create_app(services: LocalServices) -> FastAPI:
    """FastAPI application serving one project's local storage URLs."""
    app = FastAPI(
        title="Local Storage",
        version=VERSION,
        description="Local development stand-in for cloud storage",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None
    )

    app.include_router(services.router)

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint():
        """Check database health."""
        db_health = services.db.health_check()
        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            project_path=services.project_path
        )

    return app
