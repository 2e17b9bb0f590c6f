"""Turn a ``WorkflowInfo`` into a linear trigger -> action graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_studio.errors import GenerationFailed
from workflow_studio.graph.analyzer import WorkflowInfo, analyze_prompt
from workflow_studio.graph.model import (
    Edge,
    Node,
    NodeData,
    NodeKind,
    Position,
    ServiceType,
    WorkflowGraph,
    new_id,
)

logger = logging.getLogger(__name__)

TRIGGER_X = 250.0
TRIGGER_Y = 100.0
NODE_SPACING = 150.0


@dataclass(frozen=True, slots=True)
class GeneratedWorkflow:
    name: str
    description: str
    graph: WorkflowGraph


def _make_node(service: ServiceType, kind: NodeKind, y: float) -> Node:
    if kind == NodeKind.TRIGGER:
        title, description = f"{service.label} Trigger", f"Trigger from {service.label}"
    else:
        title, description = f"{service.label} Action", f"Action for {service.label}"
    return Node(
        id=new_id(),
        type=service,
        kind=kind,
        position=Position(x=TRIGGER_X, y=y),
        data=NodeData(title=title, description=description, type=service),
    )


def synthesize_nodes(info: WorkflowInfo) -> list[Node]:
    nodes = [_make_node(info.trigger, NodeKind.TRIGGER, TRIGGER_Y)]
    for idx, action in enumerate(info.actions, start=1):
        nodes.append(_make_node(action, NodeKind.ACTION, TRIGGER_Y + idx * NODE_SPACING))
    return nodes


def synthesize_edges(nodes: list[Node]) -> list[Edge]:
    return [
        Edge(id=new_id(), source=prev.id, target=nxt.id)
        for prev, nxt in zip(nodes, nodes[1:], strict=False)
    ]


def synthesize_graph(info: WorkflowInfo) -> WorkflowGraph:
    nodes = synthesize_nodes(info)
    return WorkflowGraph(nodes=nodes, edges=synthesize_edges(nodes))


def generate_workflow_from_prompt(prompt: str) -> GeneratedWorkflow:
    """Analyze ``prompt`` and synthesize its graph.

    Raises:
        GenerationFailed: If the prompt is empty or cannot be turned into a graph.
    """

    if not prompt or not prompt.strip():
        raise GenerationFailed("Prompt is empty")

    try:
        info = analyze_prompt(prompt)
        graph = synthesize_graph(info)
    except ValueError as e:
        logger.warning("Workflow synthesis failed", extra={"error": str(e)})
        raise GenerationFailed() from e

    logger.info(
        "Workflow synthesized",
        extra={
            "trigger": info.trigger.value,
            "actions": [a.value for a in info.actions],
            "node_count": len(graph.nodes),
        },
    )
    return GeneratedWorkflow(name=info.name, description=info.description, graph=graph)
