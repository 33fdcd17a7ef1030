import asyncio
import logging
from typing import List, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class ToolLaunchError(Exception):
    """Raised when the yt-dlp binary cannot be started."""


class ToolExecutionError(Exception):
    """Raised when yt-dlp exits with a non-zero status."""
    def __init__(self, message: str, returncode: Optional[int], stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def build_download_command(url: str) -> List[str]:
    """Media goes to stdout, one progress line per update goes to stderr.

    ``--`` keeps a url starting with a dash from being read as an option.
    """
    return [
        settings.YTDLP_BINARY,
        "--newline",
        "--remux-video",
        settings.REMUX_FORMAT,
        "-o",
        "-",
        "--",
        url,
    ]


def build_manifest_command(url: str) -> List[str]:
    return [settings.YTDLP_BINARY, "-j", "--", url]


async def _spawn(command: List[str]) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=settings.STDERR_LINE_LIMIT,
        )
    except (OSError, ValueError) as e:
        # ValueError: an argument with an embedded null byte
        logger.error("Failed to start %s: %s", command[0], e)
        raise ToolLaunchError(f"Failed to start {command[0]}: {e}") from e


async def spawn_download(url: str) -> asyncio.subprocess.Process:
    """
    Start a yt-dlp download for ``url``.

    The caller owns the returned process and must drain both ``stdout``
    and ``stderr``; a full pipe stalls the tool.

    Raises:
        ToolLaunchError: If the binary is missing or not executable
    """
    process = await _spawn(build_download_command(url))
    logger.info("Started yt-dlp pid=%s for url=%s", process.pid, url)
    return process


async def fetch_manifest(url: str) -> str:
    """
    Run yt-dlp in metadata-only mode and return its stdout verbatim.

    Raises:
        ToolLaunchError: If the binary is missing or not executable
        ToolExecutionError: If yt-dlp exits non-zero or times out
    """
    process = await _spawn(build_manifest_command(url))

    timeout = settings.MANIFEST_TIMEOUT_SECONDS or None
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ToolExecutionError(
            f"yt-dlp manifest timed out after {timeout}s",
            returncode=process.returncode,
        )

    if process.returncode != 0:
        raise ToolExecutionError(
            f"yt-dlp exited with status {process.returncode}",
            returncode=process.returncode,
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    return stdout.decode("utf-8", errors="replace")
