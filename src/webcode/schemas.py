"""Request and response bodies for the REST API."""

from dataclasses import asdict
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .core import (
    DEFAULT_DISPLAYED_EVENT_COUNT,
    DEFAULT_SESSION_TITLE,
    InputHistoryItem,
    Message,
    OutputPanelState,
    Project,
    PromptTemplate,
    QuickAction,
    Session,
    utcnow,
)
from .git import GitCommit, GitCredentials, GitDiffResult, GitStatus


class MessageModel(BaseModel):
    role: str = "user"
    content: str = ""
    created_at: Optional[datetime] = None

    def to_core(self) -> Message:
        return Message(role=self.role, content=self.content, created_at=self.created_at or utcnow())


class SessionModel(BaseModel):
    session_id: str
    title: str = DEFAULT_SESSION_TITLE
    workspace_path: str = ""
    tool_id: str = ""
    messages: list[MessageModel] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_workspace_valid: bool = True
    project_id: Optional[str] = None

    def to_core(self) -> Session:
        now = utcnow()
        return Session(
            session_id=self.session_id,
            title=self.title or DEFAULT_SESSION_TITLE,
            workspace_path=self.workspace_path,
            tool_id=self.tool_id,
            messages=[m.to_core() for m in self.messages],
            created_at=self.created_at or now,
            updated_at=self.updated_at or now,
            is_workspace_valid=self.is_workspace_valid,
            project_id=self.project_id,
        )

    @classmethod
    def from_core(cls, session: Session) -> "SessionModel":
        return cls.model_validate(asdict(session))


class SessionSummary(BaseModel):
    session_id: str
    title: str
    workspace_path: str
    tool_id: str
    created_at: datetime
    updated_at: datetime
    is_workspace_valid: bool
    project_id: Optional[str] = None
    message_count: int

    @classmethod
    def from_core(cls, session: Session) -> "SessionSummary":
        data = asdict(session)
        messages = data.pop("messages")
        return cls(**data, message_count=len(messages))


class OutputModel(BaseModel):
    session_id: str = ""
    raw_output: Optional[str] = ""
    events_json: Optional[str] = None
    displayed_event_count: int = DEFAULT_DISPLAYED_EVENT_COUNT
    updated_at: Optional[datetime] = None

    def to_core(self, session_id: str | None = None) -> OutputPanelState:
        return OutputPanelState(
            session_id=session_id or self.session_id,
            raw_output=self.raw_output,
            events_json=self.events_json,
            displayed_event_count=self.displayed_event_count,
            updated_at=self.updated_at or utcnow(),
        )

    @classmethod
    def from_core(cls, state: OutputPanelState) -> "OutputModel":
        return cls.model_validate(asdict(state))


class TitleRequest(BaseModel):
    text: str = ""


class SettingValue(BaseModel):
    value: Optional[str] = None


class InputHistoryRequest(BaseModel):
    text: str


class InputHistoryModel(BaseModel):
    id: int = 0
    text: str = ""
    timestamp: Optional[datetime] = None

    def to_core(self) -> InputHistoryItem:
        return InputHistoryItem(id=self.id, text=self.text, timestamp=self.timestamp or utcnow())

    @classmethod
    def from_core(cls, item: InputHistoryItem) -> "InputHistoryModel":
        return cls.model_validate(asdict(item))


class QuickActionModel(BaseModel):
    id: str
    title: str = ""
    content: str = ""
    icon: str = ""
    order: int = 0
    is_enabled: bool = True

    def to_core(self) -> QuickAction:
        return QuickAction(**self.model_dump())

    @classmethod
    def from_core(cls, action: QuickAction) -> "QuickActionModel":
        return cls.model_validate(asdict(action))


class TemplateModel(BaseModel):
    id: str
    title: str = ""
    content: str = ""
    category: str = ""
    icon: str = ""
    is_custom: bool = True
    is_favorite: bool = False
    variables: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_core(self) -> PromptTemplate:
        now = utcnow()
        data = self.model_dump()
        data["created_at"] = self.created_at or now
        data["updated_at"] = self.updated_at or now
        return PromptTemplate(**data)

    @classmethod
    def from_core(cls, template: PromptTemplate) -> "TemplateModel":
        return cls.model_validate(asdict(template))


# ── Projects & Git ───────────────────────────────────────────────────


class CredentialFields(BaseModel):
    auth_type: str = "none"
    https_username: Optional[str] = None
    https_token: Optional[str] = None
    ssh_private_key: Optional[str] = None
    ssh_passphrase: Optional[str] = None

    def to_credentials(self) -> GitCredentials:
        return GitCredentials(
            auth_type=self.auth_type,
            https_username=self.https_username,
            https_token=self.https_token,
            ssh_private_key=self.ssh_private_key,
            ssh_passphrase=self.ssh_passphrase,
        )


class ProjectRequest(CredentialFields):
    project_id: Optional[str] = None
    name: str = ""
    git_url: str = ""
    branch: str = "main"
    local_path: Optional[str] = None

    def to_core(self) -> Project:
        return Project(
            project_id=self.project_id or "",
            name=self.name,
            git_url=self.git_url,
            auth_type=self.auth_type,
            https_username=self.https_username,
            https_token=self.https_token,
            ssh_private_key=self.ssh_private_key,
            ssh_passphrase=self.ssh_passphrase,
            branch=self.branch,
            local_path=self.local_path,
        )


class ProjectView(BaseModel):
    """A project as returned to clients: secrets are reduced to flags."""

    project_id: str
    name: str
    git_url: str
    auth_type: str
    https_username: Optional[str] = None
    has_https_token: bool = False
    has_ssh_key: bool = False
    branch: str
    local_path: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    status: str
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_core(cls, project: Project) -> "ProjectView":
        return cls(
            project_id=project.project_id,
            name=project.name,
            git_url=project.git_url,
            auth_type=project.auth_type,
            https_username=project.https_username,
            has_https_token=bool(project.https_token),
            has_ssh_key=bool(project.ssh_private_key),
            branch=project.branch,
            local_path=project.local_path,
            last_sync_at=project.last_sync_at,
            status=project.status,
            error_message=project.error_message,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class BranchQuery(CredentialFields):
    git_url: str


class CommitModel(BaseModel):
    hash: str
    short_hash: str
    author: str
    author_email: str
    commit_date: Optional[datetime] = None
    message: str
    parent_hashes: list[str] = Field(default_factory=list)

    @classmethod
    def from_core(cls, commit: GitCommit) -> "CommitModel":
        return cls.model_validate(asdict(commit))


class DiffLineModel(BaseModel):
    type: str
    content: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None
    old_content: Optional[str] = None


class DiffModel(BaseModel):
    old_content: str = ""
    new_content: str = ""
    lines: list[DiffLineModel] = Field(default_factory=list)
    added_lines: int = 0
    deleted_lines: int = 0

    @classmethod
    def from_core(cls, diff: GitDiffResult) -> "DiffModel":
        return cls.model_validate(asdict(diff))


class StatusModel(BaseModel):
    modified_files: list[str] = Field(default_factory=list)
    untracked_files: list[str] = Field(default_factory=list)
    deleted_files: list[str] = Field(default_factory=list)
    staged_files: list[str] = Field(default_factory=list)

    @classmethod
    def from_core(cls, status: GitStatus) -> "StatusModel":
        return cls.model_validate(asdict(status))
