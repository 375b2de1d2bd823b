"""Modèle Utilisateur"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum

from app.models import Base


class Utilisateur(Base):
    __tablename__ = "utilisateurs"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    nom = Column(String(100))
    prenom = Column(String(100))
    role = Column(
        Enum('buyer', 'supply_chain', 'supplier', 'admin'),
        nullable=False,
        default='buyer'
    )
    # Fournisseur représenté (comptes role=supplier uniquement)
    supplier_id = Column(Integer, index=True)
    actif = Column(Boolean, default=True)
    derniere_connexion = Column(DateTime)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Utilisateur {self.username} - {self.role}>"
