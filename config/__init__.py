"""
Configuration module.

Exports:
    settings: Application settings instance
    get_supabase_client: Cached Supabase client
    check_connection: Health check used at startup and by /health
"""

from config.settings import settings
from config.database import get_supabase_client, check_connection

__all__ = [
    "settings",
    "get_supabase_client",
    "check_connection",
]
