"""
aibuddy - Pydantic Models

Response objects of the remote assistants service. Only the fields the
engine reads are declared; everything else the API returns is ignored.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _ApiObject(BaseModel):
    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Assistants
# =============================================================================


class AssistantObject(_ApiObject):
    id: str
    name: Optional[str] = None
    model: Optional[str] = None
    instructions: Optional[str] = None
    tools: List[dict] = Field(default_factory=list)


class AssistantFileObject(_ApiObject):
    id: str
    assistant_id: Optional[str] = None


class DeletionStatus(_ApiObject):
    id: str
    deleted: bool = False


# =============================================================================
# Threads / Messages / Runs
# =============================================================================


class ThreadObject(_ApiObject):
    id: str
    created_at: Optional[int] = None


class TextValue(_ApiObject):
    value: str = ""


class MessageContent(_ApiObject):
    type: str                              # "text" | "image_file"
    text: Optional[TextValue] = None
    image_file: Optional[dict] = None


class MessageObject(_ApiObject):
    id: str
    role: str = "assistant"
    thread_id: Optional[str] = None
    content: List[MessageContent] = Field(default_factory=list)


class RunObject(_ApiObject):
    id: str
    status: str
    thread_id: Optional[str] = None
    assistant_id: Optional[str] = None
    last_error: Optional[dict] = None


# =============================================================================
# Files
# =============================================================================


class FileObject(_ApiObject):
    id: str
    filename: str = ""
    purpose: Optional[str] = None
