"""Persisted domain records: users, teams, memberships, workflows, notifications."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from workflow_studio.graph.model import ServiceType, WorkflowGraph, new_id


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Visibility(str, Enum):
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


class Capability(str, Enum):
    """Independent membership flags. Values are the ``TeamMember`` field names."""

    CREATE_WORKFLOWS = "can_create_workflows"
    EDIT_WORKFLOWS = "can_edit_workflows"
    DELETE_WORKFLOWS = "can_delete_workflows"
    INVITE_MEMBERS = "can_invite_members"
    MANAGE_ROLES = "can_manage_roles"


def capabilities_for_role(role: Role) -> dict[str, bool]:
    """Capability preset applied once, when a membership is created."""

    granted = role in (Role.OWNER, Role.ADMIN)
    return {cap.value: granted for cap in Capability}


class UserProfile(BaseModel):
    id: str
    email: str = ""
    name: str = "User"
    profile_image: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class Team(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    avatar_url: str | None = None
    owner_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TeamMember(BaseModel):
    id: str = Field(default_factory=new_id)
    team_id: str
    user_id: str
    role: Role
    joined_at: datetime = Field(default_factory=utc_now)

    can_create_workflows: bool = False
    can_edit_workflows: bool = False
    can_delete_workflows: bool = False
    can_invite_members: bool = False
    can_manage_roles: bool = False

    @classmethod
    def for_role(cls, *, team_id: str, user_id: str, role: Role) -> TeamMember:
        return cls(team_id=team_id, user_id=user_id, role=role, **capabilities_for_role(role))

    def has(self, capability: Capability) -> bool:
        return bool(getattr(self, capability.value))


class WorkflowTemplates(BaseModel):
    """Per-connector message templates and connector settings."""

    discord_template: str | None = None
    slack_template: str | None = None
    slack_access_token: str | None = None
    slack_channels: list[str] = Field(default_factory=list)
    notion_template: str | None = None
    notion_access_token: str | None = None
    notion_db_id: str | None = None
    email_template: str | None = None
    email_config: dict[str, Any] | None = None
    github_template: str | None = None
    github_config: dict[str, Any] | None = None

    def without_secrets(self) -> WorkflowTemplates:
        return self.model_copy(update={"slack_access_token": None, "notion_access_token": None})


class Workflow(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    owner_id: str
    team_id: str | None = None
    visibility: Visibility = Visibility.PRIVATE
    graph_blob: str = ""
    templates: WorkflowTemplates = Field(default_factory=WorkflowTemplates)
    published: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def graph(self) -> WorkflowGraph:
        return WorkflowGraph.from_blob(self.graph_blob)


class WorkflowUpdate(BaseModel):
    """Partial workflow change. Only fields that were explicitly set are applied."""

    name: str | None = None
    description: str | None = None
    visibility: Visibility | None = None
    graph: WorkflowGraph | None = None
    templates: dict[str, Any] | None = None


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    type: str
    content: str
    created_at: datetime = Field(default_factory=utc_now)


class TeamSummary(BaseModel):
    id: str
    name: str
    description: str
    avatar_url: str | None
    member_count: int
    role: Role


class MemberDetails(BaseModel):
    member: TeamMember
    user: UserProfile | None = None


class TeamDetails(BaseModel):
    team: Team
    members: list[MemberDetails]
    workflows: list[Workflow]


class TemplateSave(BaseModel):
    """Connector template payload for one service."""

    service: ServiceType
    content: str
    channels: list[str] | None = None
    access_token: str | None = None
    notion_db_id: str | None = None
    config: dict[str, Any] | None = None
