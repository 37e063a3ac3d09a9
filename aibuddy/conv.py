"""ConversationManager -- durable binding between a profile and a remote thread.

The binding lives in ``<profile>/.buddy/conv.json`` as ``{"thread_id": ...}``
and is only trusted after the thread is fetched back from the service.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from aibuddy import config
from aibuddy.errors import ConversationStateError, RemoteServiceError, StaleConversationError
from aibuddy.events import ConvCreated, ConvLoaded, EventBus
from aibuddy.types import Conv

logger = logging.getLogger(__name__)


def load_conv(path: Path) -> Conv | None:
    """Read the persisted conversation; ``None`` when there is none."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as e:
        raise ConversationStateError(str(path), str(e)) from e
    try:
        return Conv.from_dict(json.loads(raw))
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise ConversationStateError(str(path), str(e)) from e


def save_conv(path: Path, conv: Conv) -> None:
    """Atomic write: .tmp then os.replace."""
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(conv.to_dict()), encoding="utf-8")
    os.replace(tmp_path, path)


class ConversationManager:

    def __init__(self, service: Any, bus: EventBus, profile_dir: Path) -> None:
        self.service = service
        self.bus = bus
        self.profile_dir = Path(profile_dir)

    @property
    def conv_file(self) -> Path:
        return config.conv_file(self.profile_dir)

    async def load_or_create(self, recreate: bool = False) -> Conv:
        """Load the persisted conversation or start a new thread.

        A persisted thread that can't be fetched is an error, not a reason
        to silently start over; pass ``recreate=True`` for that.
        """
        conv_file = self.conv_file

        if recreate and conv_file.exists():
            conv_file.unlink()
            logger.info("Dropped conversation file %s", conv_file)

        conv = load_conv(conv_file)
        if conv is not None:
            try:
                await self.service.get_thread(conv.thread_id)
            except RemoteServiceError as e:
                raise StaleConversationError(conv.thread_id, e.cause) from e
            self.bus.publish(ConvLoaded())
            return conv

        thread = await self.service.create_thread()
        conv = Conv(thread_id=thread.id)
        save_conv(conv_file, conv)
        logger.info("Created conversation thread %s", thread.id)
        self.bus.publish(ConvCreated())
        return conv
