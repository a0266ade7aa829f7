"""
Database connection management.

Provides the Supabase client singleton backing the local metadata store
(catalog mirror, supplier extras, suppliers) and the identity provider.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions import ConfigurationError, DatabaseError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Prefers the service role key when configured, since sync and extras
    writes bypass row level security. Call get_supabase_client.cache_clear()
    to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConfigurationError: If URL or key is missing
        DatabaseError: If the client cannot be created
    """
    key = settings.supabase_service_key or settings.supabase_key
    if not settings.supabase_url or not key:
        missing = [
            name for name, value in (
                ("SUPABASE_URL", settings.supabase_url),
                ("SUPABASE_KEY", key),
            ) if not value
        ]
        raise ConfigurationError(missing, operation="connect_store")

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "...",  # Log partial URL only
            service_role=bool(settings.supabase_service_key)
        )

        client = create_client(settings.supabase_url, key)

        logger.info("supabase_connected", status="success")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", f"Failed to connect to Supabase: {e}") from e


# Convenience alias
db = get_supabase_client


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()

        catalog = client.table("catalogo").select("sku", count="exact").limit(1).execute()
        suppliers = client.table("fornecedores").select("id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "catalog_count": catalog.count,
            "suppliers_count": suppliers.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
