"""Request and response bodies for the REST API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from workflow_studio.graph.model import WorkflowGraph
from workflow_studio.models import Visibility


class CreateTeamRequest(BaseModel):
    name: str
    description: str = ""


class UpdateTeamRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    avatar_url: str | None = None


class InviteRequest(BaseModel):
    email: str
    role: Literal["admin", "member"] = "member"


class CreateWorkflowRequest(BaseModel):
    name: str
    description: str = ""
    team_id: str | None = None
    visibility: Visibility | None = None
    graph: WorkflowGraph | None = None


class GenerateWorkflowRequest(BaseModel):
    prompt: str
    team_id: str | None = None


class CloneRequest(BaseModel):
    team_id: str | None = None


class ShareRequest(BaseModel):
    team_id: str
    visibility: Visibility = Visibility.TEAM


class PublishRequest(BaseModel):
    published: bool


class TemplateRequest(BaseModel):
    content: str
    channels: list[str] | None = None
    access_token: str | None = None
    notion_db_id: str | None = None
    config: dict[str, Any] | None = None
    execute: bool = False


class ActionOutcome(BaseModel):
    ok: bool
    message: str
    details: dict[str, Any] | None = None


class TemplateResponse(BaseModel):
    workflow_id: str
    message: str
    action: ActionOutcome | None = None


class MessageResponse(BaseModel):
    message: str


class AskRequest(BaseModel):
    query: str = Field(min_length=1)
