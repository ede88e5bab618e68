"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from madsocial.api.routes import users, events, pregames, mutuals

api_router = APIRouter(prefix="/api")
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(pregames.router)
api_router.include_router(mutuals.router)
