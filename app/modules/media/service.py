import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Set

from app.core.config import settings
from app.services.codex.client import CodexApiError
from app.services.ytdlp import runner

from .schemas import StreamEvent

logger = logging.getLogger(__name__)

Uploader = Callable[[AsyncIterator[bytes]], Awaitable[str]]

# Marks the end of one of the session's two tasks on the event queue
_TASK_DONE = object()

# Sessions currently streaming, closed on application shutdown
active_sessions: Set["DownloadSession"] = set()


class DownloadSession:
    """
    One download request: a yt-dlp process whose stderr is relayed as progress
    events while its stdout is streamed to Codex.

    Usage::

        session = DownloadSession(url, codex_client.upload)
        await session.start()
        async for event in session.events():
            ...

    Any failure (unreadable stderr, failed upload) kills the process and cancels
    the other task. Closing the ``events()`` generator early does the same, so a
    disconnected client never leaves yt-dlp running.
    """

    def __init__(self, url: str, uploader: Uploader):
        self.url = url
        self._uploader = uploader
        self.process: Optional[asyncio.subprocess.Process] = None
        self.bytes_forwarded = 0
        self._tasks: List[asyncio.Task] = []
        self._queue: "asyncio.Queue[object]" = asyncio.Queue()

    async def start(self) -> None:
        """Spawn yt-dlp. Raises ``runner.ToolLaunchError`` if it cannot start."""
        self.process = await runner.spawn_download(self.url)

    async def events(self) -> AsyncIterator[StreamEvent]:
        if self.process is None:
            raise RuntimeError("DownloadSession.start() must be awaited before events()")

        active_sessions.add(self)
        self._tasks = [
            asyncio.create_task(self._run(self._relay_progress)),
            asyncio.create_task(self._run(self._forward_media)),
        ]
        finished = 0
        try:
            while finished < len(self._tasks):
                item = await self._queue.get()
                if item is _TASK_DONE:
                    finished += 1
                    continue
                yield item
        finally:
            await self.close()

    async def close(self) -> None:
        """Cancel outstanding tasks and make sure the process is gone."""
        active_sessions.discard(self)
        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current and not task.done()]
        for task in pending:
            task.cancel()
        self._terminate()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self.process is not None:
            await self.process.wait()

    async def _run(self, step: Callable[[], Awaitable[None]]) -> None:
        try:
            await step()
        finally:
            self._queue.put_nowait(_TASK_DONE)

    async def _abort(self) -> None:
        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        self._terminate()
        await self.process.wait()

    def _terminate(self) -> None:
        # Synchronous so it still runs when the caller is being cancelled
        process = self.process
        if process is None or process.returncode is not None:
            return
        logger.warning("Killing yt-dlp pid=%s for url=%s", process.pid, self.url)
        try:
            process.kill()
        except ProcessLookupError:
            pass

    async def _relay_progress(self) -> None:
        stderr = self.process.stderr
        while True:
            try:
                raw = await stderr.readline()
            except (ValueError, OSError) as e:
                # readline raises ValueError for lines over STDERR_LINE_LIMIT
                logger.error("Error reading yt-dlp stderr for url=%s: %s", self.url, e)
                self._queue.put_nowait(StreamEvent.error("Error parsing yt-dlp output"))
                await self._abort()
                return
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            logger.debug(line)
            self._queue.put_nowait(StreamEvent.progress(line))

        returncode = await self.process.wait()
        if returncode != 0:
            logger.warning("yt-dlp exited with status %s for url=%s", returncode, self.url)
        else:
            logger.info("Download completed successfully for url=%s", self.url)
        self._queue.put_nowait(StreamEvent.completed(returncode))

    async def _media_chunks(self) -> AsyncIterator[bytes]:
        stdout = self.process.stdout
        while True:
            chunk = await stdout.read(settings.MEDIA_CHUNK_SIZE)
            if not chunk:
                break
            self.bytes_forwarded += len(chunk)
            yield chunk

    async def _forward_media(self) -> None:
        try:
            cid = await self._uploader(self._media_chunks())
        except CodexApiError as e:
            logger.error(
                "Codex upload failed for url=%s status=%s body=%s: %s",
                self.url,
                e.status_code,
                e.response_body,
                e,
            )
            self._queue.put_nowait(StreamEvent.error("Failed to upload media to Codex"))
            await self._abort()
            return
        except Exception:
            logger.exception("Unexpected error forwarding media for url=%s", self.url)
            self._queue.put_nowait(StreamEvent.error("Failed to upload media to Codex"))
            await self._abort()
            return

        logger.info("Forwarded %d bytes for url=%s as cid=%s", self.bytes_forwarded, self.url, cid)
        self._queue.put_nowait(StreamEvent.identifier(cid))

        # Codex may answer before reading everything; yt-dlp blocks on a full pipe otherwise
        discarded = await self._drain_stdout()
        if discarded:
            logger.warning(
                "Codex replied before the end of the media; discarded %d bytes for url=%s",
                discarded,
                self.url,
            )

    async def _drain_stdout(self) -> int:
        stdout = self.process.stdout
        discarded = 0
        while True:
            chunk = await stdout.read(settings.MEDIA_CHUNK_SIZE)
            if not chunk:
                return discarded
            discarded += len(chunk)


async def close_active_sessions() -> None:
    sessions = list(active_sessions)
    if sessions:
        logger.info("Closing %d active download session(s)", len(sessions))
    await asyncio.gather(*(session.close() for session in sessions), return_exceptions=True)


async def fetch_manifest(url: str) -> str:
    """Return yt-dlp's JSON metadata for ``url`` as the raw string it printed."""
    try:
        return await runner.fetch_manifest(url)
    except runner.ToolExecutionError as e:
        logger.error(
            "yt-dlp manifest failed for url=%s returncode=%s: %s\n%s",
            url,
            e.returncode,
            e,
            e.stderr,
        )
        raise
