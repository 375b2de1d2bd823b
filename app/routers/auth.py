"""
════════════════════════════════════════════════════════════
ROUTER - Authentification
════════════════════════════════════════════════════════════
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from app.auth.jwt import create_token_for_user
from app.auth.dependencies import authenticate_user, get_current_user, update_last_login
from app.schemas.auth import LoginResponse, UserResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentification"])


@router.post("/login", response_model=LoginResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Authentification et génération du token JWT

    Le token porte le rôle et, pour un compte fournisseur, l'ID du
    fournisseur représenté.
    """
    user = authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Nom d'utilisateur ou mot de passe incorrect",
            headers={"WWW-Authenticate": "Bearer"},
        )

    update_last_login(user["id"])
    logger.info("Connexion de %s (%s)", user["username"], user["role"])

    return LoginResponse(access_token=create_token_for_user(user), user=UserResponse(**user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user)):
    return UserResponse(**current_user)
