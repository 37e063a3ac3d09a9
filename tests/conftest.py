"""Shared test fixtures: an in-memory assistants service and a buddy profile."""

import itertools
import textwrap

import pytest

from aibuddy.errors import RemoteServiceError
from aibuddy.events import EventBus
from aibuddy.models import (
    AssistantFileObject,
    AssistantObject,
    DeletionStatus,
    FileObject,
    MessageContent,
    MessageObject,
    RunObject,
    TextValue,
    ThreadObject,
)


# ---------------------------------------------------------------------------
# Fake remote service
# ---------------------------------------------------------------------------

def text_content(value: str) -> list[MessageContent]:
    return [MessageContent(type="text", text=TextValue(value=value))]


class FakeAssistantService:
    """In-memory stand-in for AssistantsClient (same coroutine names).

    - ``fail(method, key)`` makes ``method`` raise RemoteServiceError for
      ``key`` (an id), or for every call when ``key`` is None.
    - ``run_script`` is the sequence of statuses returned by successive
      ``get_run`` calls; the last one repeats.
    - ``reply`` is the content appended to the thread when a run completes.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.assistants: dict[str, AssistantObject] = {}
        self.files: dict[str, FileObject] = {}
        self.file_content: dict[str, bytes] = {}
        self.asst_files: dict[str, list[str]] = {}
        self.threads: dict[str, list[MessageObject]] = {}
        self.runs: dict[str, RunObject] = {}
        self.run_script: list[str] = ["completed"]
        self.reply: list[MessageContent] = text_content("hello from the assistant")
        self.attach_id_override: str | None = None
        self.calls: list[tuple] = []
        self._failures: dict[str, set] = {}
        self._run_polls: dict[str, int] = {}

    # -- helpers ----------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))

    def fail(self, method: str, key: str | None = None) -> None:
        self._failures.setdefault(method, set()).add(key)

    def _maybe_fail(self, method: str, key: str | None = None) -> None:
        keys = self._failures.get(method, set())
        if None in keys or (key is not None and key in keys):
            raise RemoteServiceError("FAKE", f"/{method}/{key}", "boom", 500)

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)

    def seed_assistant(self, name: str, model: str = "m1") -> AssistantObject:
        asst = AssistantObject(id=self._new_id("asst"), name=name, model=model)
        self.assistants[asst.id] = asst
        self.asst_files[asst.id] = []
        return asst

    def seed_attached_file(self, asst_id: str, filename: str, content: bytes = b"x") -> FileObject:
        f = FileObject(id=self._new_id("file"), filename=filename, purpose="assistants")
        self.files[f.id] = f
        self.file_content[f.id] = content
        self.asst_files[asst_id].append(f.id)
        return f

    def seed_thread(self) -> ThreadObject:
        thread = ThreadObject(id=self._new_id("thread"))
        self.threads[thread.id] = []
        return thread

    # -- assistants -------------------------------------------------------

    async def list_assistants(self, limit: int = 100) -> list[AssistantObject]:
        self._record("list_assistants")
        self._maybe_fail("list_assistants")
        return list(self.assistants.values())[:limit]

    async def create_assistant(self, name, model, tools=None) -> AssistantObject:
        self._record("create_assistant", name, model)
        self._maybe_fail("create_assistant")
        asst = AssistantObject(
            id=self._new_id("asst"), name=name, model=model,
            tools=tools if tools is not None else [{"type": "retrieval"}],
        )
        self.assistants[asst.id] = asst
        self.asst_files[asst.id] = []
        return asst

    async def update_assistant(self, asst_id, *, instructions) -> AssistantObject:
        self._record("update_assistant", asst_id, instructions)
        self._maybe_fail("update_assistant", asst_id)
        asst = self.assistants[asst_id].model_copy(update={"instructions": instructions})
        self.assistants[asst_id] = asst
        return asst

    async def delete_assistant(self, asst_id) -> DeletionStatus:
        self._record("delete_assistant", asst_id)
        self._maybe_fail("delete_assistant", asst_id)
        self.assistants.pop(asst_id)
        self.asst_files.pop(asst_id, None)
        return DeletionStatus(id=asst_id, deleted=True)

    # -- assistant files --------------------------------------------------

    async def list_assistant_files(self, asst_id, limit: int = 100) -> list[AssistantFileObject]:
        self._record("list_assistant_files", asst_id)
        self._maybe_fail("list_assistant_files", asst_id)
        return [AssistantFileObject(id=fid, assistant_id=asst_id) for fid in self.asst_files.get(asst_id, [])]

    async def create_assistant_file(self, asst_id, file_id) -> AssistantFileObject:
        self._record("create_assistant_file", asst_id, file_id)
        self._maybe_fail("create_assistant_file", file_id)
        self.asst_files[asst_id].append(file_id)
        return AssistantFileObject(id=self.attach_id_override or file_id, assistant_id=asst_id)

    async def delete_assistant_file(self, asst_id, file_id) -> DeletionStatus:
        self._record("delete_assistant_file", asst_id, file_id)
        self._maybe_fail("delete_assistant_file", file_id)
        self.asst_files[asst_id].remove(file_id)
        return DeletionStatus(id=file_id, deleted=True)

    # -- threads / messages / runs ----------------------------------------

    async def create_thread(self) -> ThreadObject:
        self._record("create_thread")
        self._maybe_fail("create_thread")
        return self.seed_thread()

    async def get_thread(self, thread_id) -> ThreadObject:
        self._record("get_thread", thread_id)
        self._maybe_fail("get_thread", thread_id)
        if thread_id not in self.threads:
            raise RemoteServiceError("GET", f"/threads/{thread_id}", "No thread found", 404)
        return ThreadObject(id=thread_id)

    async def create_message(self, thread_id, content, role="user") -> MessageObject:
        self._record("create_message", thread_id, content)
        self._maybe_fail("create_message", thread_id)
        msg = MessageObject(id=self._new_id("msg"), role=role, thread_id=thread_id, content=text_content(content))
        self.threads[thread_id].append(msg)
        return msg

    async def list_messages(self, thread_id, limit=20, order="desc") -> list[MessageObject]:
        self._record("list_messages", thread_id, limit, order)
        self._maybe_fail("list_messages", thread_id)
        messages = list(self.threads[thread_id])
        if order == "desc":
            messages.reverse()
        return messages[:limit]

    async def create_run(self, thread_id, asst_id) -> RunObject:
        self._record("create_run", thread_id, asst_id)
        self._maybe_fail("create_run", thread_id)
        run = RunObject(id=self._new_id("run"), status="queued", thread_id=thread_id, assistant_id=asst_id)
        self.runs[run.id] = run
        self._run_polls[run.id] = 0
        return run

    async def get_run(self, thread_id, run_id) -> RunObject:
        self._record("get_run", thread_id, run_id)
        self._maybe_fail("get_run", run_id)
        idx = min(self._run_polls[run_id], len(self.run_script) - 1)
        self._run_polls[run_id] += 1
        status = self.run_script[idx]

        run = self.runs[run_id]
        if status == "completed" and run.status != "completed":
            self.threads[thread_id].append(
                MessageObject(id=self._new_id("msg"), role="assistant", thread_id=thread_id, content=self.reply)
            )
        last_error = {"code": "server_error", "message": "it broke"} if status == "failed" else None
        run = run.model_copy(update={"status": status, "last_error": last_error})
        self.runs[run_id] = run
        return run

    # -- account files ----------------------------------------------------

    async def create_file(self, file_name, content, purpose="assistants") -> FileObject:
        self._record("create_file", file_name)
        self._maybe_fail("create_file", file_name)
        f = FileObject(id=self._new_id("file"), filename=file_name, purpose=purpose)
        self.files[f.id] = f
        self.file_content[f.id] = content
        return f

    async def list_files(self, purpose=None) -> list[FileObject]:
        self._record("list_files", purpose)
        self._maybe_fail("list_files")
        return [f for f in self.files.values() if purpose is None or f.purpose == purpose]

    async def delete_file(self, file_id) -> DeletionStatus:
        self._record("delete_file", file_id)
        self._maybe_fail("delete_file", file_id)
        self.files.pop(file_id)
        self.file_content.pop(file_id, None)
        return DeletionStatus(id=file_id, deleted=True)

    async def aclose(self) -> None:
        self._record("aclose")


class FakeClock:
    """Injected sleep + clock for the run executor."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def service():
    return FakeAssistantService()


@pytest.fixture
def bus():
    return EventBus(capacity=256)


@pytest.fixture
def sub(bus):
    return bus.subscribe()


@pytest.fixture
def clock():
    return FakeClock()


BUDDY_TOML = textwrap.dedent("""\
    name = "helper"
    model = "m1"
    instructions_file = "instructions.md"

    [[file_bundles]]
    bundle_name = "docs"
    src_dir = "docs"
    src_globs = ["*.md"]
    dst_ext = "md"
""")


@pytest.fixture
def profile_dir(tmp_path):
    """A "helper" buddy with instructions and two markdown docs."""
    d = tmp_path / "helper"
    (d / "docs").mkdir(parents=True)
    (d / "buddy.toml").write_text(BUDDY_TOML, encoding="utf-8")
    (d / "instructions.md").write_text("You are a helpful buddy.\n", encoding="utf-8")
    (d / "docs" / "a.md").write_text("# A\nalpha\n", encoding="utf-8")
    (d / "docs" / "b.md").write_text("# B\nbeta\n", encoding="utf-8")
    (d / "docs" / "skip.txt").write_text("not bundled\n", encoding="utf-8")
    return d
