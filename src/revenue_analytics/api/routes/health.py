"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
def health(request: Request):
    """Check database connectivity."""
    if request.app.state.db.verify_connectivity():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
    return JSONResponse(status_code=503, content={"status": "unhealthy"})
