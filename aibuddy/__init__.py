"""aibuddy -- local buddy profiles backed by a remote assistant.

Re-exports key classes for clean imports::

    from aibuddy import Buddy, EventBus
"""

from aibuddy.types import AsstRef, Conv, CreateConfig, FileRef, ReplyProblem, ResolveOutcome, RunState
from aibuddy.errors import (
    BuddyError,
    ConfigError,
    ConversationStateError,
    ErrorKind,
    FileAttachmentMismatchError,
    MissingApiKeyError,
    RemoteServiceError,
    RunFailedError,
    RunTimeoutError,
    StaleConversationError,
    UnreadableReplyError,
    UnsafeDeleteError,
)
from aibuddy.events import Event, EventBus, EventType, Subscription
from aibuddy.client import AssistantsClient
from aibuddy.conv import ConversationManager
from aibuddy.runs import RunExecutor
from aibuddy.sync import FileSynchronizer
from aibuddy.buddy import Buddy

__all__ = [
    "AsstRef", "Conv", "CreateConfig", "FileRef", "ReplyProblem", "ResolveOutcome", "RunState",
    "BuddyError", "ErrorKind", "ConfigError", "ConversationStateError", "FileAttachmentMismatchError",
    "MissingApiKeyError", "RemoteServiceError", "RunFailedError", "RunTimeoutError",
    "StaleConversationError", "UnreadableReplyError", "UnsafeDeleteError",
    "Event", "EventBus", "EventType", "Subscription",
    "AssistantsClient", "ConversationManager", "RunExecutor", "FileSynchronizer",
    "Buddy",
]
