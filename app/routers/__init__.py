"""
API Routers
"""

from app.routers.auth import router as auth_router
from app.routers.quotes import router as quotes_router
