from __future__ import annotations

from unittest.mock import Mock

import pytest

from workflow_studio.connectors.base import ActionResult
from workflow_studio.errors import (
    Conflict,
    Forbidden,
    GenerationFailed,
    InvalidInput,
    NotFound,
    Unauthorized,
)
from workflow_studio.graph.model import ServiceType
from workflow_studio.identity import CallerIdentity
from workflow_studio.models import Team, TemplateSave, Visibility, WorkflowUpdate
from workflow_studio.services import WorkflowService
from workflow_studio.store import StateStore

PROMPT = "Create a workflow that posts new GitHub issues to a Slack channel"


def test_personal_workflow_defaults_to_private(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Mine")

    assert workflow.owner_id == owner.user_id
    assert workflow.team_id is None
    assert workflow.visibility == Visibility.PRIVATE
    assert workflow.graph().nodes == []


def test_team_workflow_defaults_to_team_visibility(
    workflow_service: WorkflowService, team: Team, admin: CallerIdentity
) -> None:
    workflow = workflow_service.create(admin, name="Shared", team_id=team.id)

    assert workflow.team_id == team.id
    assert workflow.visibility == Visibility.TEAM


def test_member_without_capability_cannot_create_team_workflow(
    workflow_service: WorkflowService, team: Team, member: CallerIdentity
) -> None:
    with pytest.raises(Forbidden):
        workflow_service.create(member, name="Nope", team_id=team.id)

    assert workflow_service.list_workflows(member, team_id=team.id) == []


def test_create_requires_caller_and_name(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    with pytest.raises(Unauthorized):
        workflow_service.create(None, name="x")
    with pytest.raises(InvalidInput):
        workflow_service.create(owner, name=" ")


def test_create_in_unknown_team_is_not_found(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    with pytest.raises(NotFound):
        workflow_service.create(owner, name="x", team_id="missing")


def test_create_from_prompt(workflow_service: WorkflowService, owner: CallerIdentity) -> None:
    workflow = workflow_service.create_from_prompt(owner, prompt=PROMPT)

    graph = workflow_service.get_graph(owner, workflow.id)
    assert workflow.name == "Posts new GitHub issues to a Slack channel"
    assert workflow.description == PROMPT
    assert [n.type for n in graph.nodes] == [ServiceType.GITHUB, ServiceType.SLACK]
    assert graph.is_linear_chain()


def test_create_from_blank_prompt_persists_nothing(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    with pytest.raises(GenerationFailed):
        workflow_service.create_from_prompt(owner, prompt="   ")

    assert workflow_service.list_workflows(owner) == []


def test_owner_can_always_update(
    workflow_service: WorkflowService, team: Team, owner: CallerIdentity, member: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Team flow", team_id=team.id)
    workflow_service.share_with_team(
        owner, workflow.id, team_id=team.id, visibility=Visibility.PUBLIC
    )
    own = workflow_service.create(member, name="Member flow")

    updated = workflow_service.update(member, own.id, WorkflowUpdate(name="Renamed"))

    assert updated.name == "Renamed"
    assert updated.updated_at >= own.updated_at
    with pytest.raises(Forbidden):
        workflow_service.update(member, workflow.id, WorkflowUpdate(name="Hijack"))


def test_member_owned_team_workflow_can_be_edited_by_its_owner(
    workflow_service: WorkflowService,
    team: Team,
    owner: CallerIdentity,
    member: CallerIdentity,
) -> None:
    mine = workflow_service.create(member, name="Draft")
    workflow_service.share_with_team(member, mine.id, team_id=team.id)

    updated = workflow_service.update(
        member, mine.id, WorkflowUpdate(description="edited", visibility=Visibility.PRIVATE)
    )

    assert updated.description == "edited"
    assert updated.visibility == Visibility.PRIVATE
    assert updated.team_id == team.id


def test_admin_edits_team_workflow_via_capability(
    workflow_service: WorkflowService, team: Team, owner: CallerIdentity, admin: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Team flow", team_id=team.id)
    graph = workflow_service.create_from_prompt(owner, prompt=PROMPT).graph()

    updated = workflow_service.update(admin, workflow.id, WorkflowUpdate(graph=graph))

    assert updated.graph() == graph
    assert updated.owner_id == owner.user_id


def test_update_rejects_empty_changes_and_unknown_templates(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    with pytest.raises(InvalidInput):
        workflow_service.update(owner, workflow.id, WorkflowUpdate())
    with pytest.raises(InvalidInput):
        workflow_service.update(owner, workflow.id, WorkflowUpdate(templates={"bogus": "x"}))

    updated = workflow_service.update(
        owner, workflow.id, WorkflowUpdate(templates={"discord_template": "hi"})
    )
    assert updated.templates.discord_template == "hi"


def test_update_rejects_wrongly_typed_template_values(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    with pytest.raises(InvalidInput, match="slack_channels"):
        workflow_service.update(
            owner, workflow.id, WorkflowUpdate(templates={"slack_channels": "abc"})
        )

    assert workflow_service.get(owner, workflow.id).templates.slack_channels == []


def test_delete_by_owner_or_capability(
    workflow_service: WorkflowService,
    team: Team,
    owner: CallerIdentity,
    admin: CallerIdentity,
    member: CallerIdentity,
) -> None:
    first = workflow_service.create(owner, name="One", team_id=team.id)
    second = workflow_service.create(owner, name="Two", team_id=team.id)

    with pytest.raises(Forbidden):
        workflow_service.delete(member, first.id)

    workflow_service.delete(admin, first.id)
    workflow_service.delete(owner, second.id)

    with pytest.raises(NotFound):
        workflow_service.get(owner, first.id)
    with pytest.raises(NotFound):
        workflow_service.delete(owner, second.id)


def test_visibility_rules_for_get(
    workflow_service: WorkflowService,
    team: Team,
    owner: CallerIdentity,
    member: CallerIdentity,
    outsider: CallerIdentity,
) -> None:
    shared = workflow_service.create(owner, name="Shared", team_id=team.id)
    private = workflow_service.create(
        owner, name="Private", team_id=team.id, visibility=Visibility.PRIVATE
    )

    assert workflow_service.get(member, shared.id).id == shared.id
    assert workflow_service.get(owner, private.id).id == private.id
    with pytest.raises(Forbidden):
        workflow_service.get(member, private.id)
    with pytest.raises(Forbidden):
        workflow_service.get(outsider, shared.id)


def test_list_workflows(
    workflow_service: WorkflowService,
    team: Team,
    owner: CallerIdentity,
    member: CallerIdentity,
    outsider: CallerIdentity,
) -> None:
    workflow_service.create(owner, name="Shared", team_id=team.id)
    workflow_service.create(owner, name="Private", team_id=team.id, visibility=Visibility.PRIVATE)
    workflow_service.create(member, name="Mine")

    assert sorted(w.name for w in workflow_service.list_workflows(member)) == ["Mine", "Shared"]
    assert [w.name for w in workflow_service.list_workflows(member, team_id=team.id)] == [
        "Shared"
    ]
    assert sorted(w.name for w in workflow_service.list_workflows(owner, team_id=team.id)) == [
        "Private",
        "Shared",
    ]
    with pytest.raises(Forbidden):
        workflow_service.list_workflows(outsider, team_id=team.id)


def test_share_requires_ownership_and_membership(
    workflow_service: WorkflowService,
    team: Team,
    owner: CallerIdentity,
    admin: CallerIdentity,
    outsider: CallerIdentity,
) -> None:
    mine = workflow_service.create(owner, name="Mine")
    theirs = workflow_service.create(outsider, name="Theirs")

    with pytest.raises(Forbidden):
        workflow_service.share_with_team(admin, mine.id, team_id=team.id)
    with pytest.raises(Forbidden):
        workflow_service.share_with_team(outsider, theirs.id, team_id=team.id)

    shared = workflow_service.share_with_team(owner, mine.id, team_id=team.id)
    assert shared.team_id == team.id
    assert shared.visibility == Visibility.TEAM

    with pytest.raises(Conflict):
        workflow_service.share_with_team(owner, mine.id, team_id=team.id)


def test_clone(
    workflow_service: WorkflowService, team: Team, owner: CallerIdentity, member: CallerIdentity
) -> None:
    source = workflow_service.create_from_prompt(owner, prompt=PROMPT, team_id=team.id)
    workflow_service.save_node_template(
        owner,
        source.id,
        TemplateSave(
            service=ServiceType.SLACK, content="New issue", channels=["#dev"], access_token="xoxb"
        ),
    )

    clone = workflow_service.clone(member, source.id)

    assert clone.id != source.id
    assert clone.name == f"{source.name} (Clone)"
    assert clone.owner_id == member.user_id
    assert clone.visibility == Visibility.PRIVATE
    assert clone.team_id is None
    assert clone.graph() == source.graph()
    assert clone.templates.slack_template == "New issue"
    assert clone.templates.slack_channels == ["#dev"]
    assert clone.templates.slack_access_token is None


def test_clone_into_team_requires_create_capability(
    workflow_service: WorkflowService, team: Team, admin: CallerIdentity, member: CallerIdentity
) -> None:
    source = workflow_service.create(member, name="Personal")

    with pytest.raises(Forbidden):
        workflow_service.clone(member, source.id, team_id=team.id)

    shared = workflow_service.create(admin, name="Admin flow", team_id=team.id)
    clone = workflow_service.clone(admin, shared.id, team_id=team.id)
    assert clone.team_id == team.id
    assert clone.visibility == Visibility.PRIVATE


def test_clone_of_invisible_workflow_is_forbidden(
    workflow_service: WorkflowService, owner: CallerIdentity, outsider: CallerIdentity
) -> None:
    private = workflow_service.create(owner, name="Secret")

    with pytest.raises(Forbidden):
        workflow_service.clone(outsider, private.id)


def test_publish_toggle(workflow_service: WorkflowService, owner: CallerIdentity) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    message = workflow_service.set_published(owner, workflow.id, published=True)
    assert message == "Workflow published"
    assert workflow_service.get(owner, workflow.id).published is True
    assert (
        workflow_service.set_published(owner, workflow.id, published=False)
        == "Workflow unpublished"
    )


def test_slack_template_deduplicates_channels(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    workflow_service.save_node_template(
        owner, workflow.id, TemplateSave(service=ServiceType.SLACK, content="a", channels=["#a"])
    )
    result = workflow_service.save_node_template(
        owner,
        workflow.id,
        TemplateSave(service=ServiceType.SLACK, content="b", channels=["#a", "#b", " "]),
    )

    assert result.message == "Slack template saved"
    assert result.action is None
    assert result.workflow.templates.slack_template == "b"
    assert result.workflow.templates.slack_channels == ["#a", "#b"]


def test_notion_and_email_templates(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    workflow_service.save_node_template(
        owner,
        workflow.id,
        TemplateSave(
            service=ServiceType.NOTION, content="row", access_token="secret", notion_db_id="db1"
        ),
    )
    result = workflow_service.save_node_template(
        owner,
        workflow.id,
        TemplateSave(service=ServiceType.EMAIL, content="Hello", config={"to": "a@example.com"}),
    )

    templates = result.workflow.templates
    assert templates.notion_template == "row"
    assert templates.notion_access_token == "secret"
    assert templates.notion_db_id == "db1"
    assert templates.email_template == "Hello"
    assert templates.email_config == {"to": "a@example.com"}


def test_template_for_service_without_template_is_invalid(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    with pytest.raises(InvalidInput):
        workflow_service.save_node_template(
            owner, workflow.id, TemplateSave(service=ServiceType.MANUAL, content="x")
        )


def test_template_save_requires_edit_rights(
    workflow_service: WorkflowService, team: Team, owner: CallerIdentity, member: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow", team_id=team.id)

    with pytest.raises(Forbidden):
        workflow_service.save_node_template(
            member, workflow.id, TemplateSave(service=ServiceType.DISCORD, content="x")
        )


def test_github_action_runs_after_save(store: StateStore, owner: CallerIdentity) -> None:
    connector = Mock()
    connector.execute.return_value = ActionResult(ok=True, message="Created issue #7")
    service = WorkflowService(store=store, connectors={ServiceType.GITHUB: connector})
    workflow = service.create(owner, name="Flow")

    result = service.save_node_template(
        owner,
        workflow.id,
        TemplateSave(
            service=ServiceType.GITHUB,
            content="Issue body",
            access_token="ghp_token",
            config={"repository": "acme/repo", "action": "create_issue", "title": "Hi"},
        ),
        execute=True,
    )

    assert result.action == ActionResult(ok=True, message="Created issue #7")
    config = connector.execute.call_args.args[0]
    assert config["access_token"] == "ghp_token"
    assert config["repository"] == "acme/repo"
    saved = service.get(owner, workflow.id).templates
    assert saved.github_template == "Issue body"
    assert saved.github_config == {
        "repository": "acme/repo",
        "action": "create_issue",
        "title": "Hi",
    }


def test_failing_connector_keeps_saved_template(store: StateStore, owner: CallerIdentity) -> None:
    connector = Mock()
    connector.execute.side_effect = RuntimeError("network down")
    service = WorkflowService(store=store, connectors={ServiceType.GITHUB: connector})
    workflow = service.create(owner, name="Flow")

    result = service.save_node_template(
        owner,
        workflow.id,
        TemplateSave(service=ServiceType.GITHUB, content="body", config={"action": "commit_file"}),
        execute=True,
    )

    assert result.action is not None
    assert result.action.ok is False
    assert "network down" in result.action.message
    assert service.get(owner, workflow.id).templates.github_template == "body"


def test_execute_without_connector_reports_failure(
    workflow_service: WorkflowService, owner: CallerIdentity
) -> None:
    workflow = workflow_service.create(owner, name="Flow")

    result = workflow_service.save_node_template(
        owner, workflow.id, TemplateSave(service=ServiceType.DISCORD, content="x"), execute=True
    )

    assert result.action is not None
    assert result.action.ok is False
