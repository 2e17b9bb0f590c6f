"""FastAPI app factory.

Endpoints are thin wrappers over the team and workflow services. The caller is
taken from identity headers set by the fronting identity provider; domain errors
are translated to HTTP responses in one exception handler.
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workflow_studio import __version__
from workflow_studio.assistant import AppResponse, StudioAssistant
from workflow_studio.config import StudioSettings
from workflow_studio.connectors import ConnectorRegistry, default_connectors
from workflow_studio.errors import InvalidInput, StudioError
from workflow_studio.graph.model import ServiceType, WorkflowGraph
from workflow_studio.identity import CallerIdentity
from workflow_studio.llm import LLMFactory
from workflow_studio.models import (
    Notification,
    Team,
    TeamDetails,
    TeamMember,
    TeamSummary,
    TemplateSave,
    Workflow,
    WorkflowUpdate,
)
from workflow_studio.server.models import (
    ActionOutcome,
    AskRequest,
    CloneRequest,
    CreateTeamRequest,
    CreateWorkflowRequest,
    GenerateWorkflowRequest,
    InviteRequest,
    MessageResponse,
    PublishRequest,
    ShareRequest,
    TemplateRequest,
    TemplateResponse,
    UpdateTeamRequest,
)
from workflow_studio.services import TeamService, WorkflowService
from workflow_studio.store import StateStore

logger = logging.getLogger(__name__)


def get_caller(
    x_user_id: str | None = Header(default=None),
    x_user_email: str = Header(default=""),
    x_user_first_name: str = Header(default=""),
    x_user_last_name: str = Header(default=""),
    x_user_image_url: str | None = Header(default=None),
) -> CallerIdentity | None:
    """Build the caller from identity headers; None when unauthenticated."""

    if x_user_id is None or not x_user_id.strip():
        return None
    return CallerIdentity(
        user_id=x_user_id.strip(),
        email=x_user_email,
        first_name=x_user_first_name,
        last_name=x_user_last_name,
        image_url=x_user_image_url,
    )


def _public(workflow: Workflow) -> Workflow:
    return workflow.model_copy(update={"templates": workflow.templates.without_secrets()})


def _service_type(value: str) -> ServiceType:
    for service in ServiceType:
        if value.lower() in (service.value.lower(), service.label.lower()):
            return service
    raise InvalidInput(f"Unknown service: {value}")


def create_app(
    settings: StudioSettings | None = None,
    *,
    store: StateStore | None = None,
    connectors: ConnectorRegistry | None = None,
    assistant: StudioAssistant | None = None,
) -> FastAPI:
    settings = settings or StudioSettings()
    store = store or StateStore(settings.state_path)
    if connectors is None:
        connectors = default_connectors(github_base_url=settings.github_base_url)
    if assistant is None:
        assistant = StudioAssistant(LLMFactory.create(settings.llm))

    teams = TeamService(store=store)
    workflows = WorkflowService(store=store, connectors=connectors)

    app = FastAPI(
        title="Workflow Studio",
        version=__version__,
        description="REST API over the workflow studio team and workflow services.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StudioError)
    async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
        if exc.status >= 500:
            logger.error("Request failed", extra={"path": request.url.path, "code": exc.code})
        return JSONResponse(
            status_code=exc.status, content={"detail": exc.message, "code": exc.code}
        )

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # Teams

    @app.post("/api/teams", response_model=Team, status_code=201)
    def create_team(
        body: CreateTeamRequest, caller: CallerIdentity | None = Depends(get_caller)
    ) -> Team:
        return teams.create_team(caller, name=body.name, description=body.description)

    @app.get("/api/teams", response_model=list[TeamSummary])
    def list_teams(caller: CallerIdentity | None = Depends(get_caller)) -> list[TeamSummary]:
        return teams.get_user_teams(caller)

    @app.get("/api/teams/{team_id}", response_model=TeamDetails)
    def get_team(team_id: str, caller: CallerIdentity | None = Depends(get_caller)) -> TeamDetails:
        details = teams.get_team_details(caller, team_id)
        return details.model_copy(update={"workflows": [_public(w) for w in details.workflows]})

    @app.patch("/api/teams/{team_id}", response_model=Team)
    def update_team(
        team_id: str,
        body: UpdateTeamRequest,
        caller: CallerIdentity | None = Depends(get_caller),
    ) -> Team:
        return teams.update_team(
            caller,
            team_id,
            name=body.name,
            description=body.description,
            avatar_url=body.avatar_url,
        )

    @app.delete("/api/teams/{team_id}", status_code=204)
    def delete_team(team_id: str, caller: CallerIdentity | None = Depends(get_caller)) -> None:
        teams.delete_team(caller, team_id)

    @app.post("/api/teams/{team_id}/members", response_model=TeamMember, status_code=201)
    def invite(
        team_id: str, body: InviteRequest, caller: CallerIdentity | None = Depends(get_caller)
    ) -> TeamMember:
        return teams.invite_to_team(caller, team_id, email=body.email, role=body.role)

    @app.delete("/api/teams/{team_id}/members/{member_id}", status_code=204)
    def remove_member(
        team_id: str, member_id: str, caller: CallerIdentity | None = Depends(get_caller)
    ) -> None:
        teams.remove_from_team(caller, team_id, member_id)

    @app.get("/api/teams/{team_id}/workflows", response_model=list[Workflow])
    def team_workflows(
        team_id: str, caller: CallerIdentity | None = Depends(get_caller)
    ) -> list[Workflow]:
        return [_public(w) for w in workflows.list_workflows(caller, team_id=team_id)]

    @app.get("/api/notifications", response_model=list[Notification])
    def notifications(caller: CallerIdentity | None = Depends(get_caller)) -> list[Notification]:
        return teams.list_notifications(caller)

    # Workflows

    @app.get("/api/workflows", response_model=list[Workflow])
    def list_workflows(caller: CallerIdentity | None = Depends(get_caller)) -> list[Workflow]:
        return [_public(w) for w in workflows.list_workflows(caller)]

    @app.post("/api/workflows", response_model=Workflow, status_code=201)
    def create_workflow(
        body: CreateWorkflowRequest, caller: CallerIdentity | None = Depends(get_caller)
    ) -> Workflow:
        created = workflows.create(
            caller,
            name=body.name,
            description=body.description,
            team_id=body.team_id,
            visibility=body.visibility,
            graph=body.graph,
        )
        return _public(created)

    @app.post("/api/workflows/generate", response_model=Workflow, status_code=201)
    def generate_workflow(
        body: GenerateWorkflowRequest, caller: CallerIdentity | None = Depends(get_caller)
    ) -> Workflow:
        generated = workflows.create_from_prompt(caller, prompt=body.prompt, team_id=body.team_id)
        return _public(generated)

    @app.get("/api/workflows/{workflow_id}", response_model=Workflow)
    def get_workflow(
        workflow_id: str, caller: CallerIdentity | None = Depends(get_caller)
    ) -> Workflow:
        return _public(workflows.get(caller, workflow_id))

    @app.get("/api/workflows/{workflow_id}/graph", response_model=WorkflowGraph)
    def get_graph(
        workflow_id: str, caller: CallerIdentity | None = Depends(get_caller)
    ) -> WorkflowGraph:
        return workflows.get_graph(caller, workflow_id)

    @app.patch("/api/workflows/{workflow_id}", response_model=Workflow)
    def update_workflow(
        workflow_id: str,
        body: WorkflowUpdate,
        caller: CallerIdentity | None = Depends(get_caller),
    ) -> Workflow:
        return _public(workflows.update(caller, workflow_id, body))

    @app.delete("/api/workflows/{workflow_id}", status_code=204)
    def delete_workflow(
        workflow_id: str, caller: CallerIdentity | None = Depends(get_caller)
    ) -> None:
        workflows.delete(caller, workflow_id)

    @app.post("/api/workflows/{workflow_id}/clone", response_model=Workflow, status_code=201)
    def clone_workflow(
        workflow_id: str,
        body: CloneRequest | None = None,
        caller: CallerIdentity | None = Depends(get_caller),
    ) -> Workflow:
        team_id = body.team_id if body is not None else None
        return _public(workflows.clone(caller, workflow_id, team_id=team_id))

    @app.post("/api/workflows/{workflow_id}/share", response_model=Workflow)
    def share_workflow(
        workflow_id: str, body: ShareRequest, caller: CallerIdentity | None = Depends(get_caller)
    ) -> Workflow:
        shared = workflows.share_with_team(
            caller, workflow_id, team_id=body.team_id, visibility=body.visibility
        )
        return _public(shared)

    @app.post("/api/workflows/{workflow_id}/publish", response_model=MessageResponse)
    def publish_workflow(
        workflow_id: str, body: PublishRequest, caller: CallerIdentity | None = Depends(get_caller)
    ) -> MessageResponse:
        message = workflows.set_published(caller, workflow_id, published=body.published)
        return MessageResponse(message=message)

    @app.put("/api/workflows/{workflow_id}/templates/{service}", response_model=TemplateResponse)
    def save_template(
        workflow_id: str,
        service: str,
        body: TemplateRequest,
        caller: CallerIdentity | None = Depends(get_caller),
    ) -> TemplateResponse:
        save = TemplateSave(
            service=_service_type(service),
            content=body.content,
            channels=body.channels,
            access_token=body.access_token,
            notion_db_id=body.notion_db_id,
            config=body.config,
        )
        result = workflows.save_node_template(caller, workflow_id, save, execute=body.execute)
        action = None
        if result.action is not None:
            action = ActionOutcome(
                ok=result.action.ok, message=result.action.message, details=result.action.details
            )
        return TemplateResponse(workflow_id=workflow_id, message=result.message, action=action)

    # Assistant

    @app.post("/api/assistant", response_model=AppResponse)
    def ask(body: AskRequest) -> AppResponse:
        return assistant.ask(body.query)

    return app
