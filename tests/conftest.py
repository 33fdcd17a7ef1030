import json
import sys
from pathlib import Path
from typing import Any, AsyncIterable, Dict, List, Optional, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import settings


class FakeCodex:
    """Stands in for CodexClient; records what yt-dlp wrote to stdout."""

    def __init__(
        self,
        cid: str = "bafy-test-cid",
        error: Optional[Exception] = None,
        max_chunks: Optional[int] = None,
    ):
        self.cid = cid
        self.error = error
        # Reply after this many chunks, like a storage node answering early
        self.max_chunks = max_chunks
        self.received = b""
        self.calls = 0

    async def upload(self, body: AsyncIterable[bytes]) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        chunks = 0
        async for chunk in body:
            self.received += chunk
            chunks += 1
            if self.max_chunks is not None and chunks >= self.max_chunks:
                break
        return self.cid


def parse_sse(text: str) -> List[Tuple[str, Dict[str, Any]]]:
    events = []
    for frame in text.split("\n\n"):
        if not frame.strip():
            continue
        fields = dict(line.split(": ", 1) for line in frame.splitlines())
        events.append((fields["event"], json.loads(fields["data"])))
    return events


@pytest.fixture
def fake_ytdlp(tmp_path, monkeypatch):
    """Install a /bin/sh script as the yt-dlp binary and return its path."""

    def _install(body: str) -> Path:
        script = tmp_path / "yt-dlp"
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(0o755)
        monkeypatch.setattr(settings, "YTDLP_BINARY", str(script))
        return script

    return _install
