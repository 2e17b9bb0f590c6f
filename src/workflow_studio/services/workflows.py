"""Workflow lifecycle manager.

Create, generate from a prompt, update, delete, clone, share, publish and read
workflows. Every operation is one store transaction and checks authorization
inside it. Connector actions run only after the transaction that saved their
template has committed; a connector failure never undoes that save.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from workflow_studio.authz import AccessContext, AuthorizationEngine, Operation
from workflow_studio.connectors.base import ActionResult, ConnectorRegistry
from workflow_studio.errors import Conflict, Forbidden, InvalidInput
from workflow_studio.graph.model import ServiceType, WorkflowGraph
from workflow_studio.graph.synthesizer import generate_workflow_from_prompt
from workflow_studio.identity import CallerIdentity, ensure_profile, require_caller
from workflow_studio.models import (
    TemplateSave,
    Visibility,
    Workflow,
    WorkflowTemplates,
    WorkflowUpdate,
    utc_now,
)
from workflow_studio.services.base import StoreBackedService, load_team, load_workflow
from workflow_studio.store import StateStore, StoreSession

logger = logging.getLogger(__name__)

CLONE_SUFFIX = " (Clone)"


@dataclass(frozen=True, slots=True)
class TemplateSaveResult:
    workflow: Workflow
    message: str
    action: ActionResult | None = None


def _merge_channels(existing: list[str], incoming: list[str] | None) -> list[str]:
    merged = list(existing)
    for channel in incoming or []:
        channel = channel.strip()
        if channel and channel not in merged:
            merged.append(channel)
    return merged


def _template_changes(current: WorkflowTemplates, save: TemplateSave) -> dict[str, Any]:
    """Template fields written for one service; other services' fields are untouched."""

    service = save.service
    if service == ServiceType.DISCORD:
        return {"discord_template": save.content}
    if service == ServiceType.SLACK:
        changes: dict[str, Any] = {
            "slack_template": save.content,
            "slack_channels": _merge_channels(current.slack_channels, save.channels),
        }
        if save.access_token is not None:
            changes["slack_access_token"] = save.access_token
        return changes
    if service == ServiceType.NOTION:
        changes = {"notion_template": save.content}
        if save.access_token is not None:
            changes["notion_access_token"] = save.access_token
        if save.notion_db_id is not None:
            changes["notion_db_id"] = save.notion_db_id
        return changes
    if service == ServiceType.EMAIL:
        return {"email_template": save.content, "email_config": save.config}
    if service == ServiceType.GITHUB:
        config = dict(save.config or {})
        config.pop("access_token", None)
        return {"github_template": save.content, "github_config": config}
    raise InvalidInput(f"{service.value} has no node template")


class WorkflowService(StoreBackedService):
    def __init__(
        self,
        *,
        store: StateStore,
        authz: AuthorizationEngine | None = None,
        connectors: ConnectorRegistry | None = None,
    ) -> None:
        super().__init__(store=store, authz=authz)
        self._connectors: ConnectorRegistry = connectors or {}

    # Helpers

    def _context(
        self, session: StoreSession, caller_id: str, workflow: Workflow
    ) -> AccessContext:
        return AccessContext(
            caller_id=caller_id,
            team_id=workflow.team_id,
            membership=session.get_membership(workflow.team_id, caller_id),
            resource_owner_id=workflow.owner_id,
        )

    def _authorize_team_create(self, session: StoreSession, caller_id: str, team_id: str) -> None:
        load_team(session, team_id)
        self._authz.authorize(
            Operation.CREATE_TEAM_WORKFLOW,
            AccessContext(
                caller_id=caller_id,
                team_id=team_id,
                membership=session.get_membership(team_id, caller_id),
            ),
        )

    def _load_visible(self, session: StoreSession, caller_id: str, workflow_id: str) -> Workflow:
        workflow = load_workflow(session, workflow_id)
        membership = session.get_membership(workflow.team_id, caller_id)
        if not self._authz.can_view_workflow(workflow, caller_id, membership):
            raise Forbidden()
        return workflow

    def _load_for(
        self, session: StoreSession, caller_id: str, workflow_id: str, operation: Operation
    ) -> Workflow:
        workflow = load_workflow(session, workflow_id)
        self._authz.authorize(operation, self._context(session, caller_id, workflow))
        return workflow

    # Creation

    def create(
        self,
        caller: CallerIdentity | None,
        *,
        name: str,
        description: str = "",
        team_id: str | None = None,
        visibility: Visibility | None = None,
        graph: WorkflowGraph | None = None,
    ) -> Workflow:
        """Create a workflow owned by the caller.

        Team workflows require the create capability in that team and default to
        ``team`` visibility; personal workflows default to ``private``.
        """

        caller = require_caller(caller)
        if not name.strip():
            raise InvalidInput("Workflow name is required")

        with self._unit_of_work("create_workflow") as session:
            ensure_profile(session, caller)
            if team_id is not None:
                self._authorize_team_create(session, caller.user_id, team_id)
            default_visibility = Visibility.TEAM if team_id is not None else Visibility.PRIVATE
            workflow = session.put_workflow(
                Workflow(
                    name=name.strip(),
                    description=description,
                    owner_id=caller.user_id,
                    team_id=team_id,
                    visibility=visibility or default_visibility,
                    graph_blob=(graph or WorkflowGraph()).to_blob(),
                )
            )

        logger.info(
            "Workflow created",
            extra={"workflow_id": workflow.id, "owner_id": caller.user_id, "team_id": team_id},
        )
        return workflow

    def create_from_prompt(
        self, caller: CallerIdentity | None, *, prompt: str, team_id: str | None = None
    ) -> Workflow:
        """Generate a workflow graph from free text and persist it.

        Raises:
            GenerationFailed: The prompt could not be turned into a workflow; nothing
                is persisted.
        """

        caller = require_caller(caller)
        generated = generate_workflow_from_prompt(prompt)
        return self.create(
            caller,
            name=generated.name,
            description=generated.description,
            team_id=team_id,
            graph=generated.graph,
        )

    def clone(
        self, caller: CallerIdentity | None, workflow_id: str, *, team_id: str | None = None
    ) -> Workflow:
        """Copy a visible workflow into a new private workflow owned by the caller.

        Access tokens stay with the source workflow.
        """

        caller = require_caller(caller)
        with self._unit_of_work("clone_workflow") as session:
            ensure_profile(session, caller)
            source = self._load_visible(session, caller.user_id, workflow_id)
            if team_id is not None:
                self._authorize_team_create(session, caller.user_id, team_id)

            clone = session.put_workflow(
                Workflow(
                    name=f"{source.name}{CLONE_SUFFIX}",
                    description=source.description,
                    owner_id=caller.user_id,
                    team_id=team_id,
                    visibility=Visibility.PRIVATE,
                    graph_blob=source.graph_blob,
                    templates=source.templates.without_secrets(),
                )
            )

        logger.info(
            "Workflow cloned",
            extra={"source_id": workflow_id, "workflow_id": clone.id, "owner_id": caller.user_id},
        )
        return clone

    # Mutation

    def update(
        self, caller: CallerIdentity | None, workflow_id: str, changes: WorkflowUpdate
    ) -> Workflow:
        caller = require_caller(caller)
        fields = changes.model_dump(exclude_unset=True)
        if not fields:
            raise InvalidInput("No changes given")
        if "name" in fields and not (changes.name or "").strip():
            raise InvalidInput("Workflow name cannot be empty")

        with self._unit_of_work("update_workflow") as session:
            workflow = self._load_for(
                session, caller.user_id, workflow_id, Operation.UPDATE_WORKFLOW
            )

            update: dict[str, Any] = {"updated_at": utc_now()}
            for key in ("name", "description", "visibility"):
                if key in fields and getattr(changes, key) is not None:
                    update[key] = getattr(changes, key)
            if "graph" in fields:
                update["graph_blob"] = (changes.graph or WorkflowGraph()).to_blob()
            if changes.templates:
                unknown = set(changes.templates) - set(WorkflowTemplates.model_fields)
                if unknown:
                    raise InvalidInput(f"Unknown template fields: {sorted(unknown)}")
                try:
                    update["templates"] = WorkflowTemplates.model_validate(
                        {**workflow.templates.model_dump(), **changes.templates}
                    )
                except ValidationError as e:
                    invalid = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
                    raise InvalidInput(f"Invalid template fields: {invalid}") from e
            workflow = session.put_workflow(workflow.model_copy(update=update))

        logger.info(
            "Workflow updated", extra={"workflow_id": workflow_id, "fields": sorted(fields)}
        )
        return workflow

    def delete(self, caller: CallerIdentity | None, workflow_id: str) -> None:
        caller = require_caller(caller)
        with self._unit_of_work("delete_workflow") as session:
            self._load_for(session, caller.user_id, workflow_id, Operation.DELETE_WORKFLOW)
            session.delete_workflow(workflow_id)
        logger.info("Workflow deleted", extra={"workflow_id": workflow_id})

    def share_with_team(
        self,
        caller: CallerIdentity | None,
        workflow_id: str,
        *,
        team_id: str,
        visibility: Visibility = Visibility.TEAM,
    ) -> Workflow:
        """Attach the caller's own workflow to a team they belong to."""

        caller = require_caller(caller)
        with self._unit_of_work("share_workflow") as session:
            workflow = load_workflow(session, workflow_id)
            load_team(session, team_id)
            self._authz.authorize(
                Operation.SHARE_WORKFLOW,
                AccessContext(
                    caller_id=caller.user_id,
                    team_id=team_id,
                    membership=session.get_membership(team_id, caller.user_id),
                    resource_owner_id=workflow.owner_id,
                ),
            )
            if workflow.team_id == team_id and workflow.visibility == visibility:
                raise Conflict("Workflow is already shared with this team")

            workflow = session.put_workflow(
                workflow.model_copy(
                    update={"team_id": team_id, "visibility": visibility, "updated_at": utc_now()}
                )
            )

        logger.info(
            "Workflow shared",
            extra={"workflow_id": workflow_id, "team_id": team_id, "visibility": visibility.value},
        )
        return workflow

    def set_published(
        self, caller: CallerIdentity | None, workflow_id: str, *, published: bool
    ) -> str:
        caller = require_caller(caller)
        with self._unit_of_work("publish_workflow") as session:
            workflow = self._load_for(
                session, caller.user_id, workflow_id, Operation.UPDATE_WORKFLOW
            )
            session.put_workflow(
                workflow.model_copy(update={"published": published, "updated_at": utc_now()})
            )
        return "Workflow published" if published else "Workflow unpublished"

    def save_node_template(
        self,
        caller: CallerIdentity | None,
        workflow_id: str,
        save: TemplateSave,
        *,
        execute: bool = False,
    ) -> TemplateSaveResult:
        """Store a connector template and optionally run its action once.

        The action runs after the save has committed. Its outcome is reported in
        the result; a failing action leaves the saved template in place.
        """

        caller = require_caller(caller)
        with self._unit_of_work("save_node_template") as session:
            workflow = self._load_for(
                session, caller.user_id, workflow_id, Operation.UPDATE_WORKFLOW
            )
            templates = workflow.templates.model_copy(
                update=_template_changes(workflow.templates, save)
            )
            workflow = session.put_workflow(
                workflow.model_copy(update={"templates": templates, "updated_at": utc_now()})
            )

        message = f"{save.service.label} template saved"
        if not execute:
            return TemplateSaveResult(workflow=workflow, message=message)
        return TemplateSaveResult(
            workflow=workflow, message=message, action=self._run_connector(workflow_id, save)
        )

    def _run_connector(self, workflow_id: str, save: TemplateSave) -> ActionResult:
        connector = self._connectors.get(save.service)
        if connector is None:
            return ActionResult(ok=False, message=f"No connector action for {save.service.value}")

        config: dict[str, Any] = dict(save.config or {})
        if save.access_token:
            config["access_token"] = save.access_token
        try:
            result = connector.execute(config)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Connector action raised",
                extra={"workflow_id": workflow_id, "service": save.service.value},
                exc_info=True,
            )
            return ActionResult(ok=False, message=f"{save.service.label} action failed: {e}")

        log = logger.info if result.ok else logger.warning
        log(
            "Connector action finished",
            extra={
                "workflow_id": workflow_id,
                "service": save.service.value,
                "ok": result.ok,
                "result": result.message,
            },
        )
        return result

    # Reads

    def get(self, caller: CallerIdentity | None, workflow_id: str) -> Workflow:
        caller = require_caller(caller)
        with self._unit_of_work("get_workflow") as session:
            return self._load_visible(session, caller.user_id, workflow_id)

    def get_graph(self, caller: CallerIdentity | None, workflow_id: str) -> WorkflowGraph:
        return self.get(caller, workflow_id).graph()

    def list_workflows(
        self, caller: CallerIdentity | None, *, team_id: str | None = None
    ) -> list[Workflow]:
        """Workflows visible to the caller, most recently modified first.

        Without ``team_id``: the caller's own workflows plus shared workflows of
        every team they belong to. With ``team_id``: that team's workflows the
        caller can see; membership is required.
        """

        caller = require_caller(caller)
        with self._unit_of_work("list_workflows") as session:
            if team_id is not None:
                load_team(session, team_id)
                membership = session.get_membership(team_id, caller.user_id)
                self._authz.authorize(
                    Operation.VIEW_TEAM,
                    AccessContext(
                        caller_id=caller.user_id, team_id=team_id, membership=membership
                    ),
                )
                return [
                    w
                    for w in session.list_workflows(team_id=team_id)
                    if self._authz.can_view_workflow(w, caller.user_id, membership)
                ]

            found = {w.id: w for w in session.list_workflows(owner_id=caller.user_id)}
            for membership in session.list_memberships(caller.user_id):
                for w in session.list_workflows(team_id=membership.team_id):
                    if self._authz.can_view_workflow(w, caller.user_id, membership):
                        found.setdefault(w.id, w)
        return sorted(found.values(), key=lambda w: w.updated_at, reverse=True)
