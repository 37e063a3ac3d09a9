"""Buddy -- a local, named profile on top of a remote assistant.

A buddy directory holds a ``buddy.toml`` profile, an instructions file,
the sources of its file bundles, and a private ``.buddy/`` data directory
(conversation binding and generated bundles).

Buddies are single-user: calls on one instance are expected to be made
one after the other, since a conversation thread only runs one turn at a
time.

Usage::

    bus = EventBus()
    async with await Buddy.init_from_dir("buddy", event_bus=bus) as buddy:
        await buddy.load_or_create_conv()
        print(await buddy.chat("What's in the docs?"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from aibuddy import asst
from aibuddy.client import AssistantsClient
from aibuddy.config import BuddyConfig, load_config
from aibuddy.conv import ConversationManager
from aibuddy.events import EventBus, Subscription
from aibuddy.runs import RunExecutor
from aibuddy.sync import FileSynchronizer
from aibuddy.types import AsstRef, Conv, ResolveOutcome

logger = logging.getLogger(__name__)


class Buddy:
    """Owns one resolved assistant and, once loaded, one conversation."""

    def __init__(
        self,
        dir: Path,
        service: Any,
        buddy_config: BuddyConfig,
        asst_ref: AsstRef,
        event_bus: EventBus,
        *,
        outcome: ResolveOutcome = ResolveOutcome.FOUND,
        executor: RunExecutor | None = None,
        owns_service: bool = False,
    ) -> None:
        self.dir = Path(dir)
        self.service = service
        self.config = buddy_config
        self.asst_ref = asst_ref
        self.outcome = outcome
        self.event_bus = event_bus
        self.conv: Conv | None = None
        self._owns_service = owns_service

        self.synchronizer = FileSynchronizer(service, event_bus, self.dir, buddy_config)
        self.conversations = ConversationManager(service, event_bus, self.dir)
        self.executor = executor or RunExecutor(service)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    async def init_from_dir(
        cls,
        dir: str | Path,
        recreate_asst: bool = False,
        event_bus: EventBus | None = None,
        service: Any = None,
        executor: RunExecutor | None = None,
    ) -> Buddy:
        """Load the profile, resolve the assistant, push instructions and files.

        Without ``service`` an ``AssistantsClient`` is built from the
        environment and closed by ``aclose()``.
        """
        dir = Path(dir)
        event_bus = event_bus or EventBus()
        buddy_config = load_config(dir)

        owns_service = service is None
        if owns_service:
            service = AssistantsClient.from_env()

        try:
            asst_ref, outcome = await asst.load_or_create(
                service, event_bus, buddy_config.create_config(), recreate_asst,
            )
            buddy = cls(
                dir, service, buddy_config, asst_ref, event_bus,
                outcome=outcome,
                executor=executor or RunExecutor(service),
                owns_service=owns_service,
            )
            await buddy.upload_instructions()
            await buddy.upload_files(False)
        except BaseException:
            if owns_service:
                await service.aclose()
            raise

        logger.info("Buddy %s ready (assistant %s, %s)", buddy.name, asst_ref.id, outcome.value)
        return buddy

    async def aclose(self) -> None:
        if self._owns_service:
            await self.service.aclose()

    async def __aenter__(self) -> Buddy:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.config.name

    def subscribe(self) -> Subscription:
        return self.event_bus.subscribe()

    async def upload_instructions(self) -> bool:
        return await self.synchronizer.upload_instructions(self.asst_ref)

    async def upload_files(self, recreate: bool = False) -> int:
        return await self.synchronizer.upload_files(self.asst_ref, recreate)

    async def load_or_create_conv(self, recreate: bool = False) -> Conv:
        self.conv = await self.conversations.load_or_create(recreate)
        return self.conv

    async def chat(self, msg: str, conv: Conv | None = None) -> str:
        """Run one turn on ``conv``, or on the bound conversation.

        With no conversation bound yet, the persisted one is loaded (or a
        new one created) first.
        """
        if conv is None:
            conv = self.conv or await self.load_or_create_conv()
        return await self.executor.run_turn(self.asst_ref.id, conv.thread_id, msg)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh_all(self) -> Conv:
        """Reload the profile, recreate the assistant, re-upload everything,
        and start a new conversation."""
        self.config = load_config(self.dir)
        self.synchronizer.config = self.config
        self.asst_ref, self.outcome = await asst.load_or_create(
            self.service, self.event_bus, self.config.create_config(), True,
        )
        await self.upload_instructions()
        await self.upload_files(True)
        return await self.load_or_create_conv(True)

    async def refresh_instructions(self) -> Conv:
        await self.upload_instructions()
        return await self.load_or_create_conv(True)

    async def refresh_files(self) -> Conv:
        await self.upload_files(True)
        return await self.load_or_create_conv(True)

    async def refresh_conv(self) -> Conv:
        return await self.load_or_create_conv(True)
