"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from flashrecall.api.v1.endpoints import study, generations, profile

api_router = APIRouter()

# Each router defines its own prefix
api_router.include_router(study.router)
api_router.include_router(generations.router)
api_router.include_router(profile.router)
