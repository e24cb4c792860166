from functools import lru_cache
from loguru import logger
from supabase import create_client, Client
from app.core.config import get_settings

@lru_cache()
def get_supabase_client() -> Client:
    """
    Returns the shared Supabase client, created on first use.
    Routers receive it through Depends() so tests can swap it out.
    """
    settings = get_settings()

    try:
        client: Client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        logger.info("Supabase client initialised.")
        return client
    except Exception as e:
        logger.error(f"Supabase client could not be initialised: {e}")
        raise Exception("Supabase client is not initialised. Check the server logs.") from e
