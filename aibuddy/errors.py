"""Error hierarchy for aibuddy.

Every error raised by the engine derives from ``BuddyError`` and carries an
``ErrorKind`` so callers can branch on the category without string parsing::

    try:
        reply = await buddy.chat(text)
    except BuddyError as e:
        match e.kind:
            case ErrorKind.STATE:
                ...  # broken binding, ask for a refresh
            case ErrorKind.REMOTE:
                ...  # transient, maybe retry later

Best-effort cleanup failures (file delete, attachment detach) are never
raised; they are published as events instead.
"""

from __future__ import annotations

from enum import Enum

from aibuddy.types import ReplyProblem


class ErrorKind(str, Enum):
    CONFIG = "config"                    # profile config or local state
    REMOTE = "remote"                    # network / API rejection
    STATE = "state"                      # local and remote disagree
    RUN_FAILED = "run_failed"            # run ended in a non-completed status
    UNREADABLE_REPLY = "unreadable_reply"


class BuddyError(Exception):
    """Base class. Subclasses set ``kind``."""
    kind: ErrorKind


# ---------------------------------------------------------------------------
# Config / local state
# ---------------------------------------------------------------------------

class ConfigError(BuddyError):
    """Missing or invalid profile configuration."""
    kind = ErrorKind.CONFIG

    def __init__(self, path: str, cause: str) -> None:
        super().__init__(f"invalid config {path}: {cause}")
        self.path = path
        self.cause = cause


class MissingApiKeyError(BuddyError):
    kind = ErrorKind.CONFIG

    def __init__(self, env_var: str) -> None:
        super().__init__(f"no {env_var} env variable, please set it")
        self.env_var = env_var


class ConversationStateError(BuddyError):
    """The local conversation file exists but cannot be parsed."""
    kind = ErrorKind.CONFIG

    def __init__(self, path: str, cause: str) -> None:
        super().__init__(f"corrupt conversation file {path}: {cause}")
        self.path = path
        self.cause = cause


class UnsafeDeleteError(BuddyError):
    """Refusing to delete a local file outside the profile data dir."""
    kind = ErrorKind.CONFIG

    def __init__(self, path: str) -> None:
        super().__init__(f"refusing to delete {path}: not under the buddy data dir")
        self.path = path


class DeleteRequiresGlobError(BuddyError):
    kind = ErrorKind.CONFIG

    def __init__(self) -> None:
        super().__init__("deleting account files requires at least one glob")


# ---------------------------------------------------------------------------
# Remote service
# ---------------------------------------------------------------------------

class RemoteServiceError(BuddyError):
    """A remote call failed (transport error or non-2xx response)."""
    kind = ErrorKind.REMOTE

    def __init__(
        self,
        method: str,
        url: str,
        cause: str,
        status_code: int | None = None,
    ) -> None:
        where = f"{method} {url}"
        if status_code is not None:
            where += f" -> {status_code}"
        super().__init__(f"{where}: {cause}")
        self.method = method
        self.url = url
        self.cause = cause
        self.status_code = status_code


# ---------------------------------------------------------------------------
# State inconsistency
# ---------------------------------------------------------------------------

class StaleConversationError(BuddyError):
    """The persisted thread id no longer resolves remotely."""
    kind = ErrorKind.STATE

    def __init__(self, thread_id: str, cause: str) -> None:
        super().__init__(f"cannot find thread {thread_id} for conversation: {cause}")
        self.thread_id = thread_id
        self.cause = cause


class FileAttachmentMismatchError(BuddyError):
    """The assistant-file attachment reported a different id than the upload."""
    kind = ErrorKind.STATE

    def __init__(self, file_id: str, attached_id: str) -> None:
        super().__init__(f"uploaded file {file_id} attached as {attached_id}")
        self.file_id = file_id
        self.attached_id = attached_id


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

class RunFailedError(BuddyError):
    """The run reached a terminal status other than ``completed``."""
    kind = ErrorKind.RUN_FAILED

    def __init__(self, status: str, run_id: str | None = None, detail: str | None = None) -> None:
        msg = f"run {run_id or '?'} ended with status {status}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.status = status
        self.run_id = run_id
        self.detail = detail


class RunTimeoutError(RunFailedError):
    """Polling gave up after ``max_wait`` seconds (only when configured)."""

    def __init__(self, run_id: str, status: str, waited: float) -> None:
        super().__init__(status, run_id, detail=f"still {status} after {waited:.1f}s")
        self.waited = waited


class UnreadableReplyError(BuddyError):
    kind = ErrorKind.UNREADABLE_REPLY

    def __init__(self, reason: ReplyProblem, thread_id: str | None = None) -> None:
        super().__init__(f"cannot read reply from thread {thread_id or '?'}: {reason.value}")
        self.reason = reason
        self.thread_id = thread_id
