from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    summary="Health check",
    description="Report whether the configured database is reachable.",
    responses={503: {"description": "Database connection failed"}},
)
def health_check(request: Request):
    """
    Health check for the database connection.

    Returns 200 with the active provider when the database answers,
    otherwise a 503 problem detail. Driver errors are logged, not returned.
    """
    database = request.app.state.database

    if not database.check_connectivity():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            media_type="application/problem+json",
            content={
                "type": "about:blank",
                "title": "Database connection failed",
                "status": status.HTTP_503_SERVICE_UNAVAILABLE,
            },
        )

    return {
        "status": "Healthy",
        "database": database.provider.value,
        "timestamp": datetime.now(timezone.utc),
    }
