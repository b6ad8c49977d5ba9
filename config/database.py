"""
Database connection management.

Provides the Supabase client singleton. Every table this application
touches is partitioned by a ``workspace_id`` column.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Callable
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If connection fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        # Test connection with simple query
        client.table("warehouses").select("id").limit(1).execute()

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


# ===================
# HELPER FUNCTIONS
# ===================

PAGE_SIZE = 1000


def fetch_all(build_query: Callable, page_size: int = PAGE_SIZE) -> list[dict]:
    """
    Read every row of a query, one page at a time.

    PostgREST caps a response at 1000 rows, so large selects are paged
    with range().

    Args:
        build_query: Returns a fresh filtered query builder on each call
        page_size: Rows per request

    Returns:
        All rows, in query order
    """
    rows: list[dict] = []
    offset = 0
    while True:
        result = build_query().range(offset, offset + page_size - 1).execute()
        page = result.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size


def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with per-workspace row counts
    """
    try:
        client = get_supabase_client()

        pieces = (
            client.table("pieces")
            .select("id", count="exact")
            .eq("workspace_id", settings.workspace_id)
            .execute()
        )
        projects = (
            client.table("projects")
            .select("id", count="exact")
            .eq("workspace_id", settings.workspace_id)
            .execute()
        )

        return {
            "status": "healthy",
            "workspace_id": settings.workspace_id,
            "pieces_count": pieces.count,
            "projects_count": projects.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
