import logging
import os
import shutil
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.modules.media.service import close_active_sessions

# Configure logger
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _resolve_binary(binary: str):
    if os.path.sep in binary:
        return binary if os.access(binary, os.X_OK) else None
    return shutil.which(binary)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    resolved = _resolve_binary(settings.YTDLP_BINARY)
    if resolved:
        logger.info("🎬 Using yt-dlp at %s", resolved)
    else:
        logger.warning("⚠️ yt-dlp binary %s not found or not executable", settings.YTDLP_BINARY)
    logger.info("📦 Uploading media to Codex at %s", settings.CODEX_URL)

    yield

    # Shutdown
    logger.info("🛑 Stopping active downloads...")
    await close_active_sessions()
