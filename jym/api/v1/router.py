"""
API v1 router setup
Internal endpoints, guarded by X-API-Key when INTERNAL_API_KEY is set
"""
from fastapi import APIRouter

from jym.api.v1 import triggers, users

api_v1_router = APIRouter()

api_v1_router.include_router(triggers.router)
api_v1_router.include_router(users.router)
