"""FileSynchronizer -- push instructions and bundle files to an assistant."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from aibuddy import asst, bundles, config
from aibuddy.config import BuddyConfig
from aibuddy.events import EventBus, InstUploaded
from aibuddy.files import upload_file_by_name
from aibuddy.types import AsstRef

logger = logging.getLogger(__name__)


class FileSynchronizer:
    """Keeps one profile's instructions and bundles in sync with its assistant.

    Bundles are processed one at a time, in config order.
    """

    def __init__(self, service: Any, bus: EventBus, profile_dir: Path, buddy_config: BuddyConfig) -> None:
        self.service = service
        self.bus = bus
        self.profile_dir = Path(profile_dir)
        self.config = buddy_config

    def bundle_path(self, asst_id: str, bundle: config.FileBundle) -> Path:
        name = bundles.bundle_file_name(self.config.name, bundle.bundle_name, asst_id, bundle.dst_ext)
        return config.files_dir(self.profile_dir) / name

    async def upload_instructions(self, asst_ref: AsstRef) -> bool:
        """Push the instructions file, if there is one. Returns whether it did."""
        inst_file = self.profile_dir / self.config.instructions_file
        if not inst_file.is_file():
            logger.debug("No instructions file at %s", inst_file)
            return False

        inst_content = inst_file.read_text(encoding="utf-8")
        await asst.upload_instructions(self.service, asst_ref.id, inst_content)
        self.bus.publish(InstUploaded())
        return True

    async def upload_files(self, asst_ref: AsstRef, recreate: bool = False) -> int:
        """Regenerate every bundle and reconcile it with the assistant's files.

        Returns the number of bundles that were actually uploaded.
        """
        num_uploaded = 0

        # -- Sweep artifacts left over from previous assistants.
        bundles.clean_stale_bundles(
            config.files_dir(self.profile_dir),
            config.data_dir(self.profile_dir),
            asst_ref.id,
        )

        for bundle in self.config.file_bundles:
            src_dir = self.profile_dir / bundle.src_dir
            if not src_dir.is_dir():
                logger.debug("Bundle %s: no source dir %s", bundle.bundle_name, src_dir)
                continue

            files = bundles.list_source_files(
                src_dir, bundle.src_globs, exclude=config.data_dir(self.profile_dir),
            )
            if not files:
                logger.debug("Bundle %s: no files match %s", bundle.bundle_name, bundle.src_globs)
                continue

            bundle_file = self.bundle_path(asst_ref.id, bundle)

            # A bundle that was not on disk yet has never been uploaded for this assistant.
            force_reupload = recreate or not bundle_file.exists()

            # Always rebundle, even when nothing gets uploaded.
            bundles.bundle_to_file(files, bundle_file, base_dir=self.profile_dir)

            _, uploaded = await upload_file_by_name(
                self.service, self.bus, asst_ref.id, bundle_file, force_reupload,
            )
            if uploaded:
                num_uploaded += 1

        return num_uploaded
