"""Assistant resolution: find by name, create, or delete and recreate."""

from __future__ import annotations

import logging
from typing import Any

from aibuddy.errors import RemoteServiceError
from aibuddy.events import (
    AsstCreated,
    AsstDeleted,
    AsstLoaded,
    EventBus,
    OrgFileCantDelete,
    OrgFileDeleted,
)
from aibuddy.files import get_files_hashmap
from aibuddy.models import AssistantObject
from aibuddy.types import AsstRef, CreateConfig, FileRef, Resolution, ResolveOutcome

logger = logging.getLogger(__name__)


def decide_resolution(existing: AssistantObject | None, recreate: bool) -> Resolution:
    """Pure decision on what to do with the assistant found by name."""
    if existing is None:
        return Resolution.CREATE_NEW
    if recreate:
        return Resolution.RECREATE
    return Resolution.FOUND


async def first_by_name(service: Any, name: str) -> AssistantObject | None:
    """First assistant in the listing whose name matches exactly."""
    for asst in await service.list_assistants():
        if asst.name == name:
            return asst
    return None


async def create(service: Any, bus: EventBus, config: CreateConfig) -> AsstRef:
    asst = await service.create_assistant(config.name, config.model)
    asst_ref = AsstRef(config.name, asst.id)
    logger.info("Created assistant %s (%s)", config.name, asst.id)
    bus.publish(AsstCreated(asst_ref))
    return asst_ref


async def delete(service: Any, bus: EventBus, asst_ref: AsstRef) -> None:
    """Delete the assistant and, first, every account file attached to it.

    A file that can't be deleted is reported and skipped; it never blocks
    the assistant deletion. Detaching is unnecessary since the assistant
    goes away.
    """
    for file_name, file_id in (await get_files_hashmap(service, asst_ref.id)).items():
        file_ref = FileRef(file_name, file_id)
        try:
            await service.delete_file(file_id)
        except RemoteServiceError as e:
            # Might already be gone.
            logger.warning("Could not delete file %s (%s): %s", file_name, file_id, e)
            bus.publish(OrgFileCantDelete(file_ref, str(e)))
        else:
            bus.publish(OrgFileDeleted(file_ref))

    await service.delete_assistant(asst_ref.id)
    logger.info("Deleted assistant %s (%s)", asst_ref.name, asst_ref.id)
    bus.publish(AsstDeleted(asst_ref))


async def load_or_create(
    service: Any,
    bus: EventBus,
    config: CreateConfig,
    recreate: bool = False,
) -> tuple[AsstRef, ResolveOutcome]:
    """Resolve ``config.name`` to a remote assistant.

    Loading an existing assistant does not touch its instructions or files.
    """
    existing = await first_by_name(service, config.name)
    resolution = decide_resolution(existing, recreate)

    if resolution is Resolution.FOUND:
        asst_ref = AsstRef(config.name, existing.id)
        bus.publish(AsstLoaded(asst_ref))
        return asst_ref, ResolveOutcome.FOUND

    if resolution is Resolution.RECREATE:
        await delete(service, bus, AsstRef(config.name, existing.id))
        return await create(service, bus, config), ResolveOutcome.RECREATED

    return await create(service, bus, config), ResolveOutcome.CREATED_NEW


async def upload_instructions(service: Any, asst_id: str, inst_content: str) -> None:
    await service.update_assistant(asst_id, instructions=inst_content)
    logger.info("Uploaded instructions to assistant %s (%d chars)", asst_id, len(inst_content))
