# =====================================
# backend/database/supabase_client.py - Database Layer
# =====================================
from supabase import create_client, Client
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Singleton do client Supabase
    Uma única instância da conexão por processo
    """
    global _supabase_client

    if _supabase_client is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_ANON_KEY")

        if not url or not key:
            raise ValueError("SUPABASE_URL e SUPABASE_ANON_KEY são obrigatórios no .env")

        _supabase_client = create_client(url, key)

    return _supabase_client


def check_connection() -> bool:
    """Testa conexão com Supabase"""
    try:
        supabase = get_supabase_client()
        supabase.table('apostas').select('id').limit(1).execute()
        return True
    except Exception as e:
        logger.error("Supabase connection test failed: %s", e)
        return False
