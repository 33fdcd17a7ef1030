from enum import Enum
from typing import Optional

from pydantic import BaseModel


END_SENTINEL = "[END]"


class StreamEventType(str, Enum):
    PROGRESS = "progress"
    COMPLETED = "completed"
    IDENTIFIER = "identifier"
    ERROR = "error"


class StreamEvent(BaseModel):
    """One frame of the download event stream."""
    type: StreamEventType
    message: Optional[str] = None
    cid: Optional[str] = None
    returncode: Optional[int] = None

    @classmethod
    def progress(cls, line: str) -> "StreamEvent":
        return cls(type=StreamEventType.PROGRESS, message=line)

    @classmethod
    def completed(cls, returncode: Optional[int] = None) -> "StreamEvent":
        return cls(type=StreamEventType.COMPLETED, message=END_SENTINEL, returncode=returncode)

    @classmethod
    def identifier(cls, cid: str) -> "StreamEvent":
        return cls(type=StreamEventType.IDENTIFIER, cid=cid)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(type=StreamEventType.ERROR, message=message)

    def to_sse(self) -> str:
        # JSON keeps tool output containing newlines inside a single data line
        return f"event: {self.type.value}\ndata: {self.model_dump_json(exclude_none=True)}\n\n"


class ManifestResponse(BaseModel):
    data: str
