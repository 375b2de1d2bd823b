"""
════════════════════════════════════════════════════════════
AUTHENTIFICATION - JWT Token Management
════════════════════════════════════════════════════════════
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.schemas.auth import TokenData


# ──────────────────────────────────────────────────────────
# Password Hashing
# ──────────────────────────────────────────────────────────

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Vérifier si le mot de passe correspond au hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hasher un mot de passe"""
    return pwd_context.hash(password)


# ──────────────────────────────────────────────────────────
# JWT Token
# ──────────────────────────────────────────────────────────

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Créer un token JWT

    Args:
        data: Données à encoder dans le token
        expires_delta: Durée de validité du token

    Returns:
        Token JWT encodé
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Décoder et valider un token JWT

    Returns:
        TokenData si valide, None sinon
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    username = payload.get("sub")
    if username is None:
        return None

    return TokenData(
        username=username,
        user_id=payload.get("user_id"),
        role=payload.get("role"),
        supplier_id=payload.get("supplier_id")
    )


def create_token_for_user(user: dict) -> str:
    """Créer un token pour un utilisateur (ligne de la table utilisateurs)"""
    return create_access_token({
        "sub": user["username"],
        "user_id": user["id"],
        "role": user["role"],
        "supplier_id": user.get("supplier_id")
    })
