"""Shared types for aibuddy.

All enums and dataclasses live here to avoid circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Resolution(str, Enum):
    """What the resolver should do with the assistant it found (or didn't)."""
    FOUND = "found"
    CREATE_NEW = "create_new"
    RECREATE = "recreate"


class ResolveOutcome(str, Enum):
    """What the resolver actually did."""
    FOUND = "found"
    CREATED_NEW = "created_new"
    RECREATED = "recreated"


class UploadAction(str, Enum):
    """Reconciliation decision for one bundle artifact."""
    SKIP = "skip"          # same name already attached, not forced
    UPLOAD = "upload"      # nothing attached under that name
    REPLACE = "replace"    # attached, but forced: delete old then upload


class RunState(str, Enum):
    """Run lifecycle states.

    QUEUED -> IN_PROGRESS -> COMPLETED | FAILED
    """
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED)


class ReplyProblem(str, Enum):
    """Why the newest thread message could not be read as a reply."""
    NO_MESSAGE = "no_message"
    EMPTY_CONTENT = "empty_content"
    NON_TEXT_CONTENT = "non_text_content"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AsstRef:
    """A resolved remote assistant: logical name + remote id."""
    name: str
    id: str


@dataclass(frozen=True)
class FileRef:
    """A remote account file as seen through one assistant's attachments."""
    name: str
    id: str


@dataclass(frozen=True)
class CreateConfig:
    """What the resolver needs to create an assistant."""
    name: str
    model: str


@dataclass
class Conv:
    """Durable binding to a remote thread, persisted as ``{"thread_id": ...}``."""
    thread_id: str

    def to_dict(self) -> dict:
        return {"thread_id": self.thread_id}

    @classmethod
    def from_dict(cls, d: dict) -> Conv:
        thread_id = d["thread_id"]
        if not isinstance(thread_id, str) or not thread_id:
            raise TypeError(f"thread_id must be a non-empty string, got {thread_id!r}")
        return cls(thread_id=thread_id)
