# app/db/session.py

import logging
from supabase import create_client, Client, ClientOptions
from app.core.config import settings

logger = logging.getLogger(__name__)

def get_supabase() -> Client:
    """
    Create a Supabase client authenticated with the service role key.

    Row ownership is enforced by the endpoints (user_id checks), not by RLS,
    because the service role bypasses row-level security.
    """
    logger.info(f"Creating Supabase client with URL: {settings.SUPABASE_URL}")
    options = ClientOptions(postgrest_client_timeout=settings.HTTP_TIMEOUT_SECONDS)
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, options=options)
