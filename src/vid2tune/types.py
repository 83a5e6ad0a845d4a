from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

JobState = Literal["pending", "finished", "error"]


@dataclass(slots=True)
class JobSnapshot:
    state: JobState
    payload: dict[str, Any] = field(default_factory=dict)
    message: str | None = None


@dataclass(slots=True)
class UploadForm:
    url: str
    parameters: dict[str, str]


@dataclass(slots=True)
class UploadedFile:
    filename: str
    content: bytes
