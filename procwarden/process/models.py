import re
from enum import Enum

from pydantic import BaseModel, field_validator

UID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def is_valid_uid(uid: str) -> bool:
    """uids name a directory under <root>/.tmp and must stay inside it."""
    return bool(UID_PATTERN.match(uid or "")) and uid not in {".", ".."}


class ProcessState(str, Enum):
    UNKNOWN = "unknown"
    RUNNING = "running"
    NOT_RUNNING = "not_running"


class ProcessHandle(BaseModel):
    uid: str
    executable: str
    arguments: str = ""

    @field_validator("uid")
    @classmethod
    def _validate_uid(cls, value: str) -> str:
        if not is_valid_uid(value):
            raise ValueError(f"invalid process uid: {value!r}")
        return value

    @field_validator("executable")
    @classmethod
    def _validate_executable(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("executable must be non-empty")
        return value
