from fastapi import APIRouter

# Import module routers
from app.modules.media.routes import router as media_router

# Create main API router
api_router = APIRouter()

# Include module routers
api_router.include_router(media_router, tags=["media"])
