"""Remote file reconciliation for one assistant.

The service does not enforce unique file names, so every upload decision
starts from a freshly computed name -> file id map. Attachment listings
carry no file names; those only come from the account file listing, hence
the join in ``get_files_hashmap``.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Any

from aibuddy.errors import (
    DeleteRequiresGlobError,
    FileAttachmentMismatchError,
    RemoteServiceError,
)
from aibuddy.events import (
    AsstFileCantRemove,
    EventBus,
    OrgFileCantDelete,
    OrgFileUploaded,
    OrgFileUploading,
)
from aibuddy.types import FileRef, UploadAction

logger = logging.getLogger(__name__)

FILE_PURPOSE = "assistants"


async def get_files_hashmap(service: Any, asst_id: str) -> dict[str, str]:
    """Return ``{file_name: file_id}`` for the files attached to ``asst_id``.

    When two attached files share a name, the first one listed wins.
    """
    asst_file_ids = {f.id for f in await service.list_assistant_files(asst_id)}
    org_files = await service.list_files(purpose=FILE_PURPOSE)

    file_id_by_name: dict[str, str] = {}
    for org_file in org_files:
        if org_file.id in asst_file_ids:
            file_id_by_name.setdefault(org_file.filename, org_file.id)
    return file_id_by_name


def decide_upload(existing_id: str | None, force: bool) -> UploadAction:
    """Pure upload decision for one artifact name."""
    if existing_id is None:
        return UploadAction.UPLOAD
    if force:
        return UploadAction.REPLACE
    return UploadAction.SKIP


async def _remove_old(service: Any, bus: EventBus, asst_id: str, file_ref: FileRef) -> None:
    """Best effort: delete the account file, then detach it from the assistant."""
    try:
        await service.delete_file(file_ref.id)
    except RemoteServiceError as e:
        logger.warning("Could not delete file %s (%s): %s", file_ref.name, file_ref.id, e)
        bus.publish(OrgFileCantDelete(file_ref, str(e)))

    try:
        await service.delete_assistant_file(asst_id, file_ref.id)
    except RemoteServiceError as e:
        logger.warning("Could not detach file %s from assistant %s: %s", file_ref.id, asst_id, e)
        bus.publish(AsstFileCantRemove(asst_id, file_ref.id, str(e)))


async def upload_file_by_name(
    service: Any,
    bus: EventBus,
    asst_id: str,
    file: Path,
    force: bool,
) -> tuple[FileRef, bool]:
    """Upload ``file`` to the account and attach it to the assistant.

    - ``force`` False: an attached file with the same name is reused as is.
    - ``force`` True: the existing file (account + attachment) is removed
      first, then the new content is uploaded.

    Returns ``(file_ref, has_been_uploaded)``.
    """
    file = Path(file)
    file_name = file.name

    file_id_by_name = await get_files_hashmap(service, asst_id)
    existing_id = file_id_by_name.get(file_name)

    action = decide_upload(existing_id, force)
    if action is UploadAction.SKIP:
        logger.debug("File %s already attached as %s, skipping upload", file_name, existing_id)
        return FileRef(file_name, existing_id), False

    if action is UploadAction.REPLACE:
        await _remove_old(service, bus, asst_id, FileRef(file_name, existing_id))

    bus.publish(OrgFileUploading(file_name))

    org_file = await service.create_file(file_name, file.read_bytes(), purpose=FILE_PURPOSE)
    file_ref = FileRef(file_name, org_file.id)
    logger.info("Uploaded %s as %s", file_name, org_file.id)
    bus.publish(OrgFileUploaded(file_ref))

    asst_file = await service.create_assistant_file(asst_id, org_file.id)
    if asst_file.id != org_file.id:
        logger.error(
            "Attachment id mismatch for %s: uploaded %s, attached %s",
            file_name, org_file.id, asst_file.id,
        )
        raise FileAttachmentMismatchError(org_file.id, asst_file.id)

    return file_ref, True


async def delete_org_files(service: Any, globs: list[str]) -> int:
    """DANGER: delete every account assistant-file whose name matches ``globs``.

    Returns the number of account files examined.
    """
    if not globs:
        raise DeleteRequiresGlobError()

    count = 0
    for org_file in await service.list_files(purpose=FILE_PURPOSE):
        count += 1
        if any(fnmatch.fnmatch(org_file.filename, g) for g in globs):
            await service.delete_file(org_file.id)
            logger.info("Deleted account file %s (%s)", org_file.filename, org_file.id)
        else:
            logger.debug("Delete skipped for %s", org_file.filename)
    return count
