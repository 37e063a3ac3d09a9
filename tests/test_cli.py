"""Tests for the CLI command parser and event formatting."""

import pytest

from aibuddy.cli import CommandKind, format_event, parse_command
from aibuddy.events import (
    AsstCreated,
    AsstDeleted,
    AsstFileCantRemove,
    AsstLoaded,
    ConvCreated,
    ConvLoaded,
    InstUploaded,
    OrgFileCantDelete,
    OrgFileDeleted,
    OrgFileUploaded,
    OrgFileUploading,
)
from aibuddy.types import AsstRef, FileRef


@pytest.mark.parametrize("text,kind", [
    ("/q", CommandKind.QUIT),
    ("/r", CommandKind.REFRESH_ALL),
    ("/ra", CommandKind.REFRESH_ALL),
    ("/ri", CommandKind.REFRESH_INST),
    ("/rf", CommandKind.REFRESH_FILES),
    ("/rc", CommandKind.REFRESH_CONV),
    (" /q ", CommandKind.QUIT),
])
def test_parse_commands(text, kind):
    assert parse_command(text).kind is kind


def test_anything_else_is_chat():
    cmd = parse_command("what is /q?")
    assert cmd.kind is CommandKind.CHAT
    assert cmd.text == "what is /q?"


ASST = AsstRef("helper", "asst_1")
FILE = FileRef("helper-docs-bundle-asst_1.md", "file_1")


@pytest.mark.parametrize("evt,needle", [
    (AsstCreated(ASST), "Assistant helper created"),
    (AsstLoaded(ASST), "Assistant helper loaded"),
    (AsstDeleted(ASST), "Assistant helper deleted"),
    (AsstFileCantRemove("asst_1", "file_1", "gone"), "can't be removed from assistant asst_1"),
    (OrgFileUploading(FILE.name), f"Uploading {FILE.name}"),
    (OrgFileUploaded(FILE), f"Uploaded  {FILE.name}"),
    (OrgFileDeleted(FILE), f"File {FILE.name} deleted"),
    (OrgFileCantDelete(FILE, "404"), "can't be deleted: 404"),
    (InstUploaded(), "Instructions uploaded"),
    (ConvCreated(), "Conversation created"),
    (ConvLoaded(), "Conversation loaded"),
])
def test_every_event_is_formatted(evt, needle):
    assert needle in format_event(evt)
