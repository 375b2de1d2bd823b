"""
════════════════════════════════════════════════════════════
PROCUREMENT QUOTES - API Backend
════════════════════════════════════════════════════════════

Démarrage:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000

Documentation:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.routers import auth_router, quotes_router


# ──────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger("procurement_quotes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_AUTO_CREATE:
        from app.database import create_tables
        create_tables()
    logger.info("%s %s démarrée", settings.APP_NAME, settings.APP_VERSION)
    yield


# ──────────────────────────────────────────────────────────
# Application FastAPI
# ──────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## API REST des cotations fournisseurs

Cette API permet de gérer:
- **Authentification** - Login JWT
- **Cotations** - Soumission, revue, clarifications
- **Évaluation** - Score pondéré qualité / coût / délai / technique
- **Comparaison** - Classements et écarts à la moyenne par RFQ
- **Décision** - Sélection et rejet
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ──────────────────────────────────────────────────────────
# CORS Middleware
# ──────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ──────────────────────────────────────────────────────────
# Routers
# ──────────────────────────────────────────────────────────

app.include_router(auth_router, prefix="/api")
app.include_router(quotes_router, prefix="/api")


# ──────────────────────────────────────────────────────────
# Routes de base
# ──────────────────────────────────────────────────────────

@app.get("/", tags=["Root"])
async def root():
    """Page d'accueil de l'API"""
    return {
        "message": f"Bienvenue sur l'API {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Vérification de l'état de l'API"""
    from app.database import get_db_connection

    db_status = "ok"
    try:
        conn = get_db_connection()
        conn.close()
    except Exception as e:
        logger.warning("Health check: base de données indisponible: %s", e)
        db_status = f"error: {str(e)}"

    return {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "database": db_status,
        "version": settings.APP_VERSION
    }


# ──────────────────────────────────────────────────────────
# Démarrage
# ──────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
