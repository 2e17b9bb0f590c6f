"""Workflow graph model and prompt-driven synthesis."""

from workflow_studio.graph.analyzer import INTENT_RULES, IntentRule, WorkflowInfo, analyze_prompt
from workflow_studio.graph.model import Edge, Node, NodeKind, ServiceType, WorkflowGraph
from workflow_studio.graph.synthesizer import (
    GeneratedWorkflow,
    generate_workflow_from_prompt,
    synthesize_graph,
)

__all__ = [
    "INTENT_RULES",
    "Edge",
    "GeneratedWorkflow",
    "IntentRule",
    "Node",
    "NodeKind",
    "ServiceType",
    "WorkflowGraph",
    "WorkflowInfo",
    "analyze_prompt",
    "generate_workflow_from_prompt",
    "synthesize_graph",
]
