"""Workflow graph model: service types, nodes, edges and the graph container."""

from __future__ import annotations

import json
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator


def new_id() -> str:
    return str(uuid.uuid4())


class ServiceType(str, Enum):
    GITHUB = "GitHub"
    SLACK = "Slack"
    DISCORD = "Discord"
    EMAIL = "Email"
    GOOGLE_DRIVE = "GoogleDrive"
    GOOGLE_CALENDAR = "GoogleCalendar"
    NOTION = "Notion"
    WEBHOOK = "Webhook"
    MANUAL = "Manual"

    @property
    def label(self) -> str:
        """Human readable name used in node titles."""

        return _LABELS[self]

    @property
    def phrase(self) -> str | None:
        """Lower-case phrase that marks the service as mentioned in free text."""

        return _PHRASES.get(self)


_LABELS: dict[ServiceType, str] = {
    ServiceType.GITHUB: "GitHub",
    ServiceType.SLACK: "Slack",
    ServiceType.DISCORD: "Discord",
    ServiceType.EMAIL: "Email",
    ServiceType.GOOGLE_DRIVE: "Google Drive",
    ServiceType.GOOGLE_CALENDAR: "Google Calendar",
    ServiceType.NOTION: "Notion",
    ServiceType.WEBHOOK: "Custom Webhook",
    ServiceType.MANUAL: "Manual",
}

# Manual has no phrase: it is the fallback trigger, never "mentioned".
_PHRASES: dict[ServiceType, str] = {
    ServiceType.GITHUB: "github",
    ServiceType.SLACK: "slack",
    ServiceType.DISCORD: "discord",
    ServiceType.EMAIL: "email",
    ServiceType.GOOGLE_DRIVE: "google drive",
    ServiceType.GOOGLE_CALENDAR: "google calendar",
    ServiceType.NOTION: "notion",
    ServiceType.WEBHOOK: "webhook",
}

# Services a prompt can mention, in catalog order.
SERVICE_CATALOG: tuple[ServiceType, ...] = tuple(_PHRASES)


class NodeKind(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"


class Position(BaseModel):
    x: float
    y: float


class NodeData(BaseModel):
    title: str
    description: str = ""
    completed: bool = False
    current: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    type: ServiceType


class Node(BaseModel):
    id: str = Field(default_factory=new_id)
    type: ServiceType
    kind: NodeKind
    position: Position
    data: NodeData


class Edge(BaseModel):
    id: str = Field(default_factory=new_id)
    source: str
    target: str


class WorkflowGraph(BaseModel):
    """Nodes plus the edges connecting them.

    Construction validates that node ids are unique and that every edge references
    nodes of this graph, so a ``WorkflowGraph`` instance is always consistent.
    """

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_integrity(self) -> WorkflowGraph:
        ids = [n.id for n in self.nodes]
        if len(ids) != len(set(ids)):
            raise ValueError("Node ids must be unique within a workflow")
        known = set(ids)
        for edge in self.edges:
            if edge.source not in known or edge.target not in known:
                raise ValueError(f"Edge {edge.id} references a node outside the workflow")
        return self

    @property
    def trigger(self) -> Node | None:
        for node in self.nodes:
            if node.kind == NodeKind.TRIGGER:
                return node
        return None

    def node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def is_linear_chain(self) -> bool:
        """True when edge i connects node i to node i+1 for every edge."""

        if len(self.edges) != max(len(self.nodes) - 1, 0):
            return False
        return all(
            edge.source == self.nodes[i].id and edge.target == self.nodes[i + 1].id
            for i, edge in enumerate(self.edges)
        )

    def to_blob(self) -> str:
        """Serialize to the opaque JSON text stored with a workflow."""

        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)

    @classmethod
    def from_blob(cls, blob: str | None) -> WorkflowGraph:
        """Parse a stored blob. An empty blob is an empty graph.

        Raises:
            ValueError: If the blob is not valid JSON or not a consistent graph.
        """

        if not blob or not blob.strip():
            return cls()
        try:
            return cls.model_validate_json(blob)
        except ValidationError as e:
            raise ValueError(f"Invalid workflow graph blob: {e}") from e
