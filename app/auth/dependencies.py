"""
════════════════════════════════════════════════════════════
AUTHENTIFICATION - Dependencies FastAPI
════════════════════════════════════════════════════════════
Acheteurs, supply chain et admins voient toutes les cotations;
un compte fournisseur ne voit que celles de son fournisseur.
"""

import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from typing import Optional

from app.auth.jwt import decode_access_token, verify_password
from app.database import execute_query, execute_update
from app.schemas.auth import PROCUREMENT_ROLES, RoleEnum


logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

USER_COLUMNS = """
    id, username, email, password_hash, nom, prenom, role, supplier_id, actif,
    derniere_connexion, created_at, updated_at
"""


# ──────────────────────────────────────────────────────────
# Utilisateurs
# ──────────────────────────────────────────────────────────

def get_user_by_username(username: str) -> Optional[dict]:
    return execute_query(
        f"SELECT {USER_COLUMNS} FROM utilisateurs WHERE username = %s",
        (username,),
        fetch_one=True
    )


def authenticate_user(username: str, password: str) -> Optional[dict]:
    """
    Vérifier identifiant et mot de passe

    Returns:
        L'utilisateur si les identifiants sont valides et le compte actif, None sinon
    """
    user = get_user_by_username(username)

    if not user or not user["actif"] or not verify_password(password, user["password_hash"]):
        logger.warning("Échec de connexion pour %s", username)
        return None

    return user


def update_last_login(user_id: int):
    execute_update("UPDATE utilisateurs SET derniere_connexion = NOW() WHERE id = %s", (user_id,))


# ──────────────────────────────────────────────────────────
# Utilisateur courant & rôles
# ──────────────────────────────────────────────────────────

async def get_current_user(token: str = Depends(oauth2_scheme)) -> dict:
    """
    Résoudre l'utilisateur porteur du token

    Raises:
        HTTPException 401 si le token est invalide, 403 si le compte est désactivé
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token invalide ou expiré",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = decode_access_token(token)
    if token_data is None:
        raise credentials_exception

    user = get_user_by_username(token_data.username)
    if user is None:
        raise credentials_exception

    if not user["actif"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Compte désactivé")

    return user


def require_role(*allowed_roles):
    """
    Dependency factory pour vérifier le rôle

    Usage:
        require_procurement = require_role(*PROCUREMENT_ROLES)
    """
    async def role_checker(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            logger.warning(
                "Accès refusé à %s (rôle %s)", current_user["username"], current_user["role"]
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permissions insuffisantes"
            )
        return current_user

    return role_checker


# ──────────────────────────────────────────────────────────
# Périmètre fournisseur
# ──────────────────────────────────────────────────────────

def is_procurement_user(user: dict) -> bool:
    return user["role"] in PROCUREMENT_ROLES


def ensure_supplier_scope(user: dict, supplier_id: int):
    """Refuser (403) l'accès d'un compte fournisseur aux cotations d'un autre fournisseur"""
    if is_procurement_user(user):
        return
    if user["role"] != RoleEnum.supplier.value or user.get("supplier_id") != supplier_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cotation hors de votre périmètre fournisseur"
        )
