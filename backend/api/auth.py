# =====================================
# backend/api/auth.py - Authentication Router
# =====================================
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from models.schemas import CurrentUser
from utils.auth_utils import TokenError, user_from_claims, verify_token

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _resolve_user(token: str) -> CurrentUser:
    try:
        return user_from_claims(verify_token(token))
    except TokenError as e:
        logger.warning("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail=str(e))


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> CurrentUser:
    """
    Dependency para rotas protegidas
    Identidade vem do access token do Supabase Auth
    """
    return _resolve_user(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[CurrentUser]:
    """Como get_current_user, mas visitantes anônimos recebem None"""
    if credentials is None:
        return None
    return _resolve_user(credentials.credentials)


async def get_user_or_anonymous(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[CurrentUser]:
    """Token expirado/inválido vira visitante anônimo (listagem nunca falha)"""
    if credentials is None:
        return None
    try:
        return user_from_claims(verify_token(credentials.credentials))
    except TokenError as e:
        logger.info("Ignoring bearer token on anonymous-capable route: %s", e)
        return None


@router.get("/me", response_model=CurrentUser)
async def me(current_user: CurrentUser = Depends(get_current_user)):
    """Usuário autenticado"""
    return current_user
