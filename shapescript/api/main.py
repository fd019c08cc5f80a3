from fastapi import APIRouter

from shapescript.api.routes import jobs, utils

api_router = APIRouter()
api_router.include_router(jobs.router)
api_router.include_router(utils.router)
