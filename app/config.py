"""
════════════════════════════════════════════════════════════
CONFIGURATION - Variables d'environnement
════════════════════════════════════════════════════════════
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pathlib import Path


# Chemin vers le fichier .env (à la racine du backend)
ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    """Configuration de l'application"""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "Procurement Quotes API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Base de données MySQL
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_NAME: str = "procurement_quotes"
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_POOL_SIZE: int = 5
    DB_AUTO_CREATE: bool = False

    # JWT Authentication
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # 8 heures

    # CORS
    CORS_ORIGINS: list = ["http://localhost:4200", "http://localhost:3000"]

    # Cotations
    DEFAULT_CURRENCY: str = "XAF"
    QUOTE_NUMBER_PREFIX: str = "QUO"
    # Valeurs de substitution pour le classement quand la donnée manque
    MISSING_DELIVERY_RANK_VALUE: float = 999
    MISSING_QUALITY_RANK_VALUE: float = 0

    @property
    def DATABASE_URL(self) -> str:
        """URL de connexion à la base de données"""
        return f"mysql+mysqlconnector://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


@lru_cache()
def get_settings() -> Settings:
    """Récupérer les settings (avec cache)"""
    return Settings()


settings = get_settings()
