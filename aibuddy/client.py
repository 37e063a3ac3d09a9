"""AssistantsClient -- async HTTP client for the remote assistants service.

Thin wrapper over one ``httpx.AsyncClient``: one coroutine per endpoint,
responses validated into the pydantic models of ``aibuddy.models``, and
every transport failure, HTTP error or malformed body converted to
``RemoteServiceError``.

Usage::

    async with AssistantsClient.from_env() as client:
        assts = await client.list_assistants()
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from aibuddy import config
from aibuddy.errors import MissingApiKeyError, RemoteServiceError
from aibuddy.models import (
    AssistantFileObject,
    AssistantObject,
    DeletionStatus,
    FileObject,
    MessageObject,
    RunObject,
    ThreadObject,
)

logger = logging.getLogger(__name__)

# Assistant tools/files endpoints used here belong to the v1 beta surface.
ASSISTANTS_BETA_HEADER = "assistants=v1"
DEFAULT_LIST_LIMIT = 100
RETRIEVAL_TOOL = {"type": "retrieval"}

_M = TypeVar("_M", bound=BaseModel)


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of the API's error message."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return response.reason_phrase


def _validate(model: type[_M], body: Any, method: str, path: str) -> _M:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise RemoteServiceError(
            method, path, f"unexpected {model.__name__} payload: {e.error_count()} validation error(s)",
        ) from e


class AssistantsClient:
    """Async client for assistants, threads, messages, runs and files."""

    def __init__(
        self,
        api_key: str,
        base_url: str = config.OPENAI_BASE_URL,
        timeout: float = config.HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "OpenAI-Beta": ASSISTANTS_BETA_HEADER,
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> AssistantsClient:
        """Build a client from ``OPENAI_API_KEY``; raise if it is not set."""
        api_key = config.get_api_key()
        if not api_key:
            raise MissingApiKeyError(config.ENV_OPENAI_API_KEY)
        return cls(api_key, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AssistantsClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteServiceError(
                method, path, _error_detail(e.response), e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteServiceError(method, path, str(e) or type(e).__name__) from e
        logger.debug("%s %s -> %s", method, path, resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteServiceError(
                method, path, f"response is not JSON: {resp.text[:200]!r}", resp.status_code,
            ) from e

    async def _call(self, model: type[_M], method: str, path: str, **kwargs: Any) -> _M:
        body = await self._request(method, path, **kwargs)
        return _validate(model, body, method, path)

    async def _list(self, model: type[_M], path: str, params: dict | None = None) -> list[_M]:
        body = await self._request("GET", path, params=params)
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise RemoteServiceError("GET", path, "list response has no 'data' array")
        return [_validate(model, d, "GET", path) for d in data]

    # ------------------------------------------------------------------
    # Assistants
    # ------------------------------------------------------------------

    async def list_assistants(self, limit: int = DEFAULT_LIST_LIMIT) -> list[AssistantObject]:
        return await self._list(AssistantObject, "/assistants", {"limit": limit})

    async def create_assistant(
        self, name: str, model: str, tools: list[dict] | None = None,
    ) -> AssistantObject:
        payload = {"name": name, "model": model, "tools": tools if tools is not None else [RETRIEVAL_TOOL]}
        return await self._call(AssistantObject, "POST", "/assistants", json=payload)

    async def update_assistant(self, asst_id: str, *, instructions: str) -> AssistantObject:
        return await self._call(
            AssistantObject, "POST", f"/assistants/{asst_id}", json={"instructions": instructions},
        )

    async def delete_assistant(self, asst_id: str) -> DeletionStatus:
        return await self._call(DeletionStatus, "DELETE", f"/assistants/{asst_id}")

    # ------------------------------------------------------------------
    # Assistant files (attachments)
    # ------------------------------------------------------------------

    async def list_assistant_files(
        self, asst_id: str, limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AssistantFileObject]:
        return await self._list(AssistantFileObject, f"/assistants/{asst_id}/files", {"limit": limit})

    async def create_assistant_file(self, asst_id: str, file_id: str) -> AssistantFileObject:
        return await self._call(
            AssistantFileObject, "POST", f"/assistants/{asst_id}/files", json={"file_id": file_id},
        )

    async def delete_assistant_file(self, asst_id: str, file_id: str) -> DeletionStatus:
        return await self._call(DeletionStatus, "DELETE", f"/assistants/{asst_id}/files/{file_id}")

    # ------------------------------------------------------------------
    # Threads / messages / runs
    # ------------------------------------------------------------------

    async def create_thread(self) -> ThreadObject:
        return await self._call(ThreadObject, "POST", "/threads", json={})

    async def get_thread(self, thread_id: str) -> ThreadObject:
        return await self._call(ThreadObject, "GET", f"/threads/{thread_id}")

    async def create_message(self, thread_id: str, content: str, role: str = "user") -> MessageObject:
        return await self._call(
            MessageObject, "POST", f"/threads/{thread_id}/messages", json={"role": role, "content": content},
        )

    async def list_messages(
        self, thread_id: str, limit: int = 20, order: str = "desc",
    ) -> list[MessageObject]:
        return await self._list(
            MessageObject, f"/threads/{thread_id}/messages", {"limit": limit, "order": order},
        )

    async def create_run(self, thread_id: str, asst_id: str) -> RunObject:
        return await self._call(
            RunObject, "POST", f"/threads/{thread_id}/runs", json={"assistant_id": asst_id},
        )

    async def get_run(self, thread_id: str, run_id: str) -> RunObject:
        return await self._call(RunObject, "GET", f"/threads/{thread_id}/runs/{run_id}")

    # ------------------------------------------------------------------
    # Account files
    # ------------------------------------------------------------------

    async def create_file(self, file_name: str, content: bytes, purpose: str = "assistants") -> FileObject:
        return await self._call(
            FileObject, "POST", "/files", files={"file": (file_name, content)}, data={"purpose": purpose},
        )

    async def list_files(self, purpose: str | None = None) -> list[FileObject]:
        params = {"purpose": purpose} if purpose else None
        return await self._list(FileObject, "/files", params)

    async def delete_file(self, file_id: str) -> DeletionStatus:
        return await self._call(DeletionStatus, "DELETE", f"/files/{file_id}")
