from fastapi import APIRouter
from dashboard.api.endpoints import settings, status

api_router = APIRouter()
api_router.include_router(settings.router)
api_router.include_router(status.router)
