import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from app.core.dependencies import get_codex_client
from app.services.codex.client import CodexClient
from app.services.ytdlp.runner import ToolExecutionError, ToolLaunchError

from .schemas import ManifestResponse
from .service import DownloadSession, fetch_manifest

router = APIRouter()
logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _require_url(url: Optional[str]) -> str:
    if not url or not url.strip():
        raise HTTPException(status_code=400, detail="URL parameter is required")
    return url


@router.get("/download", response_class=StreamingResponse, summary="Download media and upload it to Codex")
async def download(
    url: Optional[str] = Query(default=None, description="Media page URL understood by yt-dlp"),
    codex: CodexClient = Depends(get_codex_client),
):
    """
    Stream yt-dlp progress as server-sent events while the media itself is
    uploaded to Codex. The stream ends with a ``completed`` event and, when
    the upload succeeds, an ``identifier`` event carrying the CID.
    """
    url = _require_url(url)

    session = DownloadSession(url, codex.upload)
    try:
        await session.start()
    except ToolLaunchError as exc:
        raise HTTPException(status_code=500, detail="Failed to start download") from exc

    async def event_stream():
        async for event in session.events():
            yield event.to_sse()

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/manifest", response_model=ManifestResponse, summary="Fetch yt-dlp metadata for a URL")
async def manifest(
    url: Optional[str] = Query(default=None, description="Media page URL understood by yt-dlp"),
) -> ManifestResponse:
    url = _require_url(url)
    try:
        data = await fetch_manifest(url)
    except (ToolLaunchError, ToolExecutionError) as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch manifest") from exc
    return ManifestResponse(data=data)
