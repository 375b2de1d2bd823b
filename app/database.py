"""
════════════════════════════════════════════════════════════
DATABASE - Connexion MySQL
════════════════════════════════════════════════════════════
"""

import logging
from sqlalchemy import create_engine
from contextlib import contextmanager
from mysql.connector import pooling

from app.config import settings


logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────
# SQLAlchemy Engine (création du schéma) - Lazy initialization
# ──────────────────────────────────────────────────────────

_engine = None


def get_engine():
    """Obtenir l'engine SQLAlchemy (création lazy)"""
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.DATABASE_URL,
            pool_pre_ping=True,
            pool_recycle=3600,
            echo=settings.DEBUG
        )
    return _engine


def create_tables():
    """Créer les tables déclarées dans app.models si elles n'existent pas"""
    from app.models import Base

    Base.metadata.create_all(bind=get_engine())
    logger.info("Schéma vérifié: %s", ", ".join(sorted(Base.metadata.tables)))


# ──────────────────────────────────────────────────────────
# Connection Pool MySQL (pour requêtes directes)
# ──────────────────────────────────────────────────────────

db_config = {
    "host": settings.DB_HOST,
    "port": settings.DB_PORT,
    "database": settings.DB_NAME,
    "user": settings.DB_USER,
    "password": settings.DB_PASSWORD,
    "charset": "utf8mb4",
    "collation": "utf8mb4_unicode_ci"
}

# Pool de connexions (lazy initialization)
_connection_pool = None


def get_connection_pool():
    """Obtenir le pool de connexions (création lazy)"""
    global _connection_pool
    if _connection_pool is None:
        _connection_pool = pooling.MySQLConnectionPool(
            pool_name="procurement_quotes_pool",
            pool_size=settings.DB_POOL_SIZE,
            pool_reset_session=False,
            autocommit=False,
            **db_config
        )
        logger.info("Pool MySQL %s créé (%d connexions)", settings.DB_NAME, settings.DB_POOL_SIZE)
    return _connection_pool


def get_db_connection():
    """Obtenir une connexion du pool"""
    return get_connection_pool().get_connection()


@contextmanager
def get_cursor():
    """Context manager pour exécuter des requêtes (une transaction par bloc)"""
    conn = get_db_connection()
    cursor = conn.cursor(dictionary=True)
    try:
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        logger.exception("Transaction annulée")
        raise
    finally:
        cursor.close()
        conn.close()


# ──────────────────────────────────────────────────────────
# Fonctions utilitaires
# ──────────────────────────────────────────────────────────

def execute_query(query: str, params: tuple = None, fetch_one: bool = False):
    """Exécuter une requête SELECT"""
    with get_cursor() as cursor:
        cursor.execute(query, params or ())
        if fetch_one:
            result = cursor.fetchone()
        else:
            result = cursor.fetchall()
        # S'assurer que le curseur est complètement consommé
        while cursor.nextset():
            pass
        return result


def execute_insert(query: str, params: tuple = None) -> int:
    """Exécuter une requête INSERT et retourner l'ID"""
    with get_cursor() as cursor:
        cursor.execute(query, params or ())
        return cursor.lastrowid


def execute_update(query: str, params: tuple = None) -> int:
    """Exécuter une requête UPDATE/DELETE et retourner le nombre de lignes affectées"""
    with get_cursor() as cursor:
        cursor.execute(query, params or ())
        return cursor.rowcount
