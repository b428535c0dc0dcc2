"""FastAPI application factory for the assignment REST API."""

from fastapi import APIRouter, FastAPI

from api.routes import register_routes


def create_app(index, team=None, strict: bool = True, variant: str = "active") -> FastAPI:
    """Build and return a FastAPI app wired to the given TaskIndex."""
    app = FastAPI(title="vault-assign-mcp", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, index, team=team, strict=strict, variant=variant)
    app.include_router(api)

    return app
