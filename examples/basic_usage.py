#!/usr/bin/env python3
"""Programmatic usage example.

Creates a team, invites a colleague, generates a workflow from a prompt and shares
it with the team, all against a local JSON state file.

    python examples/basic_usage.py --state /tmp/studio.json \
        --prompt "Create a workflow that posts new GitHub issues to a Slack channel"
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from workflow_studio.identity import CallerIdentity
from workflow_studio.logging import configure_logging
from workflow_studio.models import Role
from workflow_studio.services import TeamService, WorkflowService
from workflow_studio.store import StateStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Workflow Studio programmatic example.")
    parser.add_argument("--state", type=Path, default=Path("studio_state/example.json"))
    parser.add_argument(
        "--prompt",
        default="Create a workflow that posts new GitHub issues to a Slack channel",
        help="Natural-language description of the workflow",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging("INFO")

    store = StateStore(args.state)
    teams = TeamService(store=store)
    workflows = WorkflowService(store=store)

    alice = CallerIdentity(user_id="alice", email="alice@example.com", first_name="Alice")
    bob = CallerIdentity(user_id="bob", email="bob@example.com", first_name="Bob")

    # Profiles are created on first sight; Bob must exist before he can be invited.
    teams.get_user_teams(bob)

    team = teams.create_team(alice, name="Platform", description="Shared automations")
    teams.invite_to_team(alice, team.id, email=bob.email, role=Role.MEMBER)

    workflow = workflows.create_from_prompt(alice, prompt=args.prompt)
    workflows.share_with_team(alice, workflow.id, team_id=team.id)

    graph = workflows.get_graph(bob, workflow.id)
    print(f"Workflow: {workflow.name}")
    for node in graph.nodes:
        print(f"  {node.kind.value:<7} {node.data.title}")
    print(f"Shared with team '{team.name}' ({len(graph.edges)} edge(s))")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
