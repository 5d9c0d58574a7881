"""Core data models for webcode."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

DEFAULT_SESSION_TITLE = "New Session"
DEFAULT_DISPLAYED_EVENT_COUNT = 20

PROJECT_STATUSES = ("pending", "cloning", "ready", "error")
AUTH_TYPES = ("none", "https", "ssh")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    """A single message within a chat session."""

    role: str  # "user" | "assistant" | "system"
    content: str = ""
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Session:
    """A persisted conversation and its ordered messages."""

    session_id: str
    title: str = DEFAULT_SESSION_TITLE
    workspace_path: str = ""
    tool_id: str = ""
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    is_workspace_valid: bool = True
    project_id: Optional[str] = None

    def snapshot(self) -> "Session":
        """Return a copy whose message list can be mutated independently.

        Messages are never edited once written, so they are shared.
        """
        return replace(self, messages=list(self.messages))


@dataclass
class OutputPanelState:
    """Transient output panel state attached to one session."""

    session_id: str
    raw_output: Optional[str] = ""
    events_json: Optional[str] = None  # serialized list of structured events
    displayed_event_count: int = DEFAULT_DISPLAYED_EVENT_COUNT
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class PromptTemplate:
    """A reusable prompt with {{placeholder}} variables."""

    id: str
    title: str = ""
    content: str = ""
    category: str = ""
    icon: str = ""
    is_custom: bool = True
    is_favorite: bool = False
    variables: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class QuickAction:
    """A one-click prompt shortcut shown next to the input box."""

    id: str
    title: str = ""
    content: str = ""
    icon: str = ""
    order: int = 0
    is_enabled: bool = True


@dataclass
class InputHistoryItem:
    """A previously submitted input line."""

    id: int
    text: str
    timestamp: datetime


@dataclass
class Project:
    """A Git remote mirrored into a local workspace."""

    project_id: str
    name: str
    git_url: str
    auth_type: str = "none"  # "none" | "https" | "ssh"
    https_username: Optional[str] = None
    https_token: Optional[str] = None
    ssh_private_key: Optional[str] = None
    ssh_passphrase: Optional[str] = None
    branch: str = "main"
    local_path: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    status: str = "pending"  # "pending" | "cloning" | "ready" | "error"
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
