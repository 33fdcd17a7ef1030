import logging

# FastAPI imports
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# API imports
from app.api import api_router

# Core imports
from app.core.config import settings
from app.core.lifespan import lifespan

# Middleware imports
from app.middleware import RequestLoggingMiddleware

# Logging configuration
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Preflight responses may be cached for 12 hours
CORS_MAX_AGE_SECONDS = 12 * 60 * 60


def create_application() -> FastAPI:
    application = FastAPI(
        title="Podex Gateway",
        description="Streams yt-dlp downloads into Codex storage",
        version=VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ALLOW_ORIGINS.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=CORS_MAX_AGE_SECONDS,
    )

    application.add_middleware(RequestLoggingMiddleware)
    application.include_router(api_router, prefix=settings.API_PREFIX or "/api/v1")

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    return application

app = create_application()

@app.get("/", tags=["App"], summary="App Version")
async def root():
    return {
        "message": "Podex gateway is running!",
        "version": VERSION,
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT)
