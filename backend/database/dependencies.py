# =====================================
# backend/database/dependencies.py - FastAPI Dependencies
# =====================================
import os
from typing import Optional

from database.repositories import BetRepository, InMemoryBetRepository, SupabaseBetRepository
from database.supabase_client import get_supabase_client
from services.bet_store import BetStore

_memory_repository: Optional[InMemoryBetRepository] = None


def get_repository() -> BetRepository:
    """
    Repositório configurado por BET_STORE_BACKEND
    'supabase' (padrão) ou 'memory' para rodar sem Supabase
    """
    global _memory_repository

    backend = os.getenv("BET_STORE_BACKEND", "supabase").lower()

    if backend == "memory":
        if _memory_repository is None:
            _memory_repository = InMemoryBetRepository()
        return _memory_repository

    if backend != "supabase":
        raise ValueError(f"BET_STORE_BACKEND inválido: {backend}")

    return SupabaseBetRepository(get_supabase_client())


def get_bet_store() -> BetStore:
    return BetStore(get_repository())
