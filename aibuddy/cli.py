#!/usr/bin/env python3
"""
aibuddy CLI - chat with a buddy directory from the terminal.

Commands at the prompt:
    /q          quit
    /r, /ra     refresh all (recreate assistant, files, conversation)
    /ri         refresh instructions (+ new conversation)
    /rf         refresh files (+ new conversation)
    /rc         new conversation
    anything    chat message
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from aibuddy import config
from aibuddy.buddy import Buddy
from aibuddy.errors import BuddyError
from aibuddy.events import (
    AsstCreated,
    AsstDeleted,
    AsstFileCantRemove,
    AsstLoaded,
    ConvCreated,
    ConvLoaded,
    Event,
    EventBus,
    InstUploaded,
    OrgFileCantDelete,
    OrgFileDeleted,
    OrgFileUploaded,
    OrgFileUploading,
    Subscription,
)

logger = logging.getLogger("aibuddy")

DEFAULT_DIR = "buddy"

ICO_RES = "[color(45)]➤[/]"
ICO_CHECK = "[green]✔[/]"
ICO_UPLOADING = "[yellow]↥[/]"
ICO_UPLOADED = "[green]↥[/]"
ICO_DELETED_OK = "[green]⌫[/]"
ICO_ERR = "[red]✗[/]"


# =============================================================================
# Commands
# =============================================================================

class CommandKind(str, Enum):
    QUIT = "quit"
    CHAT = "chat"
    REFRESH_ALL = "refresh_all"
    REFRESH_CONV = "refresh_conv"
    REFRESH_INST = "refresh_inst"
    REFRESH_FILES = "refresh_files"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    text: str = ""


_COMMANDS = {
    "/q": CommandKind.QUIT,
    "/r": CommandKind.REFRESH_ALL,
    "/ra": CommandKind.REFRESH_ALL,
    "/ri": CommandKind.REFRESH_INST,
    "/rf": CommandKind.REFRESH_FILES,
    "/rc": CommandKind.REFRESH_CONV,
}


def parse_command(text: str) -> Command:
    kind = _COMMANDS.get(text.strip())
    if kind is not None:
        return Command(kind)
    return Command(CommandKind.CHAT, text)


# =============================================================================
# Event printer
# =============================================================================

def format_event(evt: Event) -> str:
    """Rich markup line for one event."""
    match evt:
        case AsstCreated(asst_ref=ref):
            return f"{ICO_CHECK} Assistant {escape(ref.name)} created"
        case AsstLoaded(asst_ref=ref):
            return f"{ICO_CHECK} Assistant {escape(ref.name)} loaded"
        case AsstDeleted(asst_ref=ref):
            return f"{ICO_DELETED_OK} Assistant {escape(ref.name)} deleted"
        case AsstFileCantRemove(asst_id=asst_id, file_id=file_id, cause=cause):
            return (
                f"{ICO_ERR} File {file_id} can't be removed from assistant {asst_id}\n"
                f"   cause: {escape(cause)}"
            )
        case OrgFileUploading(file_name=name):
            return f"{ICO_UPLOADING} Uploading {escape(name)}"
        case OrgFileUploaded(file_ref=ref):
            return f"{ICO_UPLOADED} Uploaded  {escape(ref.name)}"
        case OrgFileDeleted(file_ref=ref):
            return f"{ICO_DELETED_OK} File {escape(ref.name)} deleted"
        case OrgFileCantDelete(file_ref=ref, cause=cause):
            return f"{ICO_ERR} File {escape(ref.name)} can't be deleted: {escape(cause)}"
        case InstUploaded():
            return f"{ICO_CHECK} Instructions uploaded"
        case ConvCreated():
            return f"{ICO_CHECK} Conversation created"
        case ConvLoaded():
            return f"{ICO_CHECK} Conversation loaded"
    raise ValueError(f"unknown event {evt!r}")


async def print_events(sub: Subscription, console: Console) -> None:
    """Print events until the subscription is closed."""
    async for evt in sub:
        console.print(format_event(evt))
    if sub.missed:
        logger.debug("Event printer missed %d events", sub.missed)


# =============================================================================
# Prompt loop
# =============================================================================

async def repl(buddy: Buddy, console: Console) -> None:
    await buddy.load_or_create_conv()

    while True:
        # Let the printer flush pending events before prompting.
        await asyncio.sleep(0.05)
        console.print()
        text = await asyncio.to_thread(Prompt.ask, "[color(45)]?[/] Ask away", console=console)
        cmd = parse_command(text)

        if cmd.kind is CommandKind.QUIT:
            return
        if cmd.kind is CommandKind.CHAT:
            with console.status("thinking..."):
                res = await buddy.chat(cmd.text)
            console.print(f"{ICO_RES} [bright_white]{escape(res)}[/]", width=80)
        elif cmd.kind is CommandKind.REFRESH_ALL:
            await buddy.refresh_all()
        elif cmd.kind is CommandKind.REFRESH_CONV:
            await buddy.refresh_conv()
        elif cmd.kind is CommandKind.REFRESH_INST:
            await buddy.refresh_instructions()
        elif cmd.kind is CommandKind.REFRESH_FILES:
            await buddy.refresh_files()


async def start(dir: str, recreate: bool, console: Console) -> None:
    event_bus = EventBus()
    sub = event_bus.subscribe()
    printer = asyncio.create_task(print_events(sub, console))

    try:
        buddy = await Buddy.init_from_dir(dir, recreate, event_bus)
        async with buddy:
            await repl(buddy, console)
    finally:
        event_bus.close()
        await printer


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with an AI buddy backed by a remote assistant")
    parser.add_argument("--dir", default=DEFAULT_DIR, help="Buddy directory (holds buddy.toml)")
    parser.add_argument("--recreate", action="store_true", help="Delete and recreate the remote assistant")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    console = Console()
    try:
        asyncio.run(start(args.dir, args.recreate, console))
    except BuddyError as e:
        console.print(f"\n{ICO_ERR} Error: {escape(str(e))}\n")
        return 1
    except (KeyboardInterrupt, EOFError):
        pass

    console.print("\nBye!\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
