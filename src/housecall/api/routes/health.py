"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check the Supabase connection and that the route tables are reachable."""
    from ...db.supabase import get_supabase_client
    from ...persistence.routes import ROUTES_TABLE

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set HOUSECALL_SUPABASE_URL and HOUSECALL_SUPABASE_KEY environment variables.",
        }

    try:
        response = supabase.table(ROUTES_TABLE).select("id", count="exact").limit(1).execute()
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {
        "configured": True,
        "connected": True,
        "routes_count": response.count or 0,
        "message": "Database connected.",
    }
