from fastapi import APIRouter

from img2prompt.api.v1.endpoints import debug, prompts, tasks

# Create the API router without a prefix since it will be added in main.py
api_router = APIRouter()

# Include routers with their respective prefixes
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(prompts.router, prefix="/prompts", tags=["prompts"])
api_router.include_router(debug.router, prefix="/debug", tags=["debug"])
