"""
════════════════════════════════════════════════════════════
SCHEMAS - Authentification
════════════════════════════════════════════════════════════
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum


class RoleEnum(str, Enum):
    buyer = "buyer"
    supply_chain = "supply_chain"
    supplier = "supplier"
    admin = "admin"


# Rôles autorisés à évaluer et décider
PROCUREMENT_ROLES = (RoleEnum.admin.value, RoleEnum.buyer.value, RoleEnum.supply_chain.value)


# ──────────────────────────────────────────────────────────
# Token
# ──────────────────────────────────────────────────────────

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    username: Optional[str] = None
    user_id: Optional[int] = None
    role: Optional[str] = None
    supplier_id: Optional[int] = None


# ──────────────────────────────────────────────────────────
# Utilisateur
# ──────────────────────────────────────────────────────────

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    nom: Optional[str] = None
    prenom: Optional[str] = None
    role: RoleEnum = RoleEnum.buyer
    supplier_id: Optional[int] = None
    actif: bool
    derniere_connexion: Optional[datetime] = None
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
