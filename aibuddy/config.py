"""
aibuddy - Configuration

Environment-driven constants, the ``buddy.toml`` profile schema, and the
layout of a profile's private ``.buddy/`` data directory.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from aibuddy.errors import ConfigError
from aibuddy.types import CreateConfig

logger = logging.getLogger(__name__)

# =============================================================================
# Remote service / engine settings
# =============================================================================

ENV_OPENAI_API_KEY = "OPENAI_API_KEY"

OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
HTTP_TIMEOUT = float(os.environ.get("BUDDY_HTTP_TIMEOUT", "60"))

# Run polling. No deadline unless BUDDY_RUN_MAX_WAIT is set.
POLL_INTERVAL = float(os.environ.get("BUDDY_POLL_INTERVAL", "0.5"))
_max_wait = os.environ.get("BUDDY_RUN_MAX_WAIT", "").strip()
RUN_MAX_WAIT: Optional[float] = float(_max_wait) if _max_wait else None

LOG_LEVEL = os.environ.get("BUDDY_LOG_LEVEL", "WARNING")


def get_api_key() -> Optional[str]:
    key = os.environ.get(ENV_OPENAI_API_KEY, "").strip()
    return key or None


# =============================================================================
# Profile config (buddy.toml)
# =============================================================================

BUDDY_TOML = "buddy.toml"


class FileBundle(BaseModel):
    bundle_name: str
    src_dir: str
    dst_ext: str
    src_globs: List[str] = Field(default_factory=list)


class BuddyConfig(BaseModel):
    name: str
    model: str
    instructions_file: str
    file_bundles: List[FileBundle] = Field(default_factory=list)

    def create_config(self) -> CreateConfig:
        return CreateConfig(name=self.name, model=self.model)


def load_config(profile_dir: Path) -> BuddyConfig:
    """Read and validate ``<profile_dir>/buddy.toml``."""
    path = Path(profile_dir) / BUDDY_TOML
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(str(path), "file not found") from None
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(str(path), str(e)) from e

    try:
        config = BuddyConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(str(path), str(e)) from e

    logger.debug("Loaded buddy config %s from %s", config.name, path)
    return config


# =============================================================================
# Paths
# =============================================================================

DATA_DIR_NAME = ".buddy"
FILES_DIR_NAME = "files"
CONV_FILE_NAME = "conv.json"


def data_dir(profile_dir: Path) -> Path:
    """``<profile>/.buddy``, created on demand."""
    d = Path(profile_dir) / DATA_DIR_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def files_dir(profile_dir: Path) -> Path:
    """``<profile>/.buddy/files``, created on demand."""
    d = data_dir(profile_dir) / FILES_DIR_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def conv_file(profile_dir: Path) -> Path:
    return data_dir(profile_dir) / CONV_FILE_NAME
