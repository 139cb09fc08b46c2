from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api", tags=["metadata"])


@router.get("/metadata")
async def get_metadata(request: Request) -> JSONResponse:
    """Describe the assistant agents and their tools. Cacheable for one hour."""
    registry = request.app.state.capability_registry
    toolbox = request.app.state.toolbox
    return JSONResponse(
        content=registry.describe(toolbox.get_descriptions()),
        headers={"Cache-Control": "public, max-age=3600"},
    )
