# =====================================
# backend/utils/auth_utils.py - JWT Utilities
# =====================================
import jwt
import os
from typing import Dict, Optional

from models.schemas import CurrentUser

# Tokens emitidos pelo Supabase Auth (login Google via OAuth)
ALGORITHM = "HS256"
AUDIENCE = "authenticated"


class TokenError(Exception):
    pass


def get_jwt_secret() -> str:
    secret = os.getenv("SUPABASE_JWT_SECRET")
    if not secret:
        raise ValueError("SUPABASE_JWT_SECRET é obrigatório no .env")
    return secret


def verify_token(token: str, secret: Optional[str] = None) -> Dict:
    """Verifica e decodifica o access token do Supabase"""
    try:
        return jwt.decode(
            token,
            secret or get_jwt_secret(),
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token")


def user_from_claims(payload: Dict) -> CurrentUser:
    """Email + nome de exibição a partir das claims do Supabase"""
    email = payload.get("email")
    if not email:
        raise TokenError("Token without email")

    metadata = payload.get("user_metadata") or {}
    name = metadata.get("full_name") or metadata.get("name")

    return CurrentUser(id=payload.get("sub"), email=email, name=name)
