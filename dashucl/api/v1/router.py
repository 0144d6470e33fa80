from fastapi import APIRouter

from dashucl.api.v1.endpoints import client_config, reminders, settings

api_router = APIRouter()
api_router.include_router(settings.router)
api_router.include_router(reminders.router)
api_router.include_router(client_config.router)
