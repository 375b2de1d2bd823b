"""
════════════════════════════════════════════════════════════
MODELS - SQLAlchemy ORM Models
════════════════════════════════════════════════════════════
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()

from app.models.quotes import Quote
from app.models.utilisateurs import Utilisateur

__all__ = [
    "Base",
    "Quote",
    "Utilisateur"
]
