"""Product assistant: canned answers about the studio with an optional LLM fallback."""

from __future__ import annotations

import logging

from openai import OpenAIError
from pydantic import BaseModel, Field

from workflow_studio.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class AppResponse(BaseModel):
    answer: str
    follow_up_questions: list[str] = Field(default_factory=list)
    source: str = "knowledge_base"


# Keys are matched as lower-case substrings of the question, in this order.
KNOWLEDGE_BASE: dict[str, AppResponse] = {
    "what is workflow studio": AppResponse(
        answer=(
            "Workflow Studio connects services such as GitHub, Slack, Discord, Notion, "
            "Google Drive, Google Calendar and email into trigger and action workflows. "
            "You can build workflows by hand, generate them from a sentence, and share "
            "them with your teams."
        ),
        follow_up_questions=[
            "How do I generate a workflow from a prompt?",
            "How does team collaboration work?",
        ],
    ),
    "how does team collaboration work": AppResponse(
        answer=(
            "Every team has one owner. The owner can invite people as admins or members. "
            "Admins can create, edit and delete team workflows, invite members and remove "
            "them; members start without those permissions. You can always edit and delete "
            "workflows you own."
        ),
        follow_up_questions=[
            "How do I share a workflow with my team?",
            "What are the different visibility options?",
        ],
    ),
    "share a workflow": AppResponse(
        answer=(
            "Open a workflow you own and share it with a team you belong to, choosing team "
            "or public visibility. Team members then see it in the team's workflow list."
        ),
        follow_up_questions=["What are the different visibility options?"],
    ),
    "visibility": AppResponse(
        answer=(
            "Workflows are private, team or public. Private workflows are visible to their "
            "owner only. Team and public workflows attached to a team are visible to every "
            "member of that team."
        ),
        follow_up_questions=["How do I share a workflow with my team?"],
    ),
    "generate a workflow": AppResponse(
        answer=(
            "Describe the automation in one sentence, for example 'Create a workflow that "
            "posts new GitHub issues to a Slack channel'. The studio picks a trigger and "
            "actions from the services you mention and lays them out as a chain you can edit."
        ),
        follow_up_questions=[
            "What kind of prompts work best?",
            "Can I edit generated workflows?",
        ],
    ),
    "prompts work best": AppResponse(
        answer=(
            "Name the services you want to connect and the event that should start the "
            "workflow. Prompts starting with 'Create a workflow that ...' also give the "
            "workflow a readable name."
        ),
        follow_up_questions=["Can I edit generated workflows?"],
    ),
    "edit generated workflows": AppResponse(
        answer=(
            "Yes. A generated workflow is an ordinary workflow owned by you: change its "
            "nodes, templates and visibility like any other."
        ),
    ),
}

FALLBACK_RESPONSE = AppResponse(
    answer=(
        "I can help with building, generating and sharing workflows. Try asking how team "
        "collaboration works or how to generate a workflow from a prompt."
    ),
    follow_up_questions=list(KNOWLEDGE_BASE)[:3],
    source="fallback",
)

SYSTEM_PROMPT = (
    "You are the help assistant of Workflow Studio, a tool for building trigger and action "
    "workflows across GitHub, Slack, Discord, Notion, Google Drive, Google Calendar and "
    "email, with team sharing. Answer briefly and only about the product."
)


def lookup(query: str) -> AppResponse | None:
    """First knowledge-base entry whose key occurs in the query."""

    normalized = query.lower()
    for key, response in KNOWLEDGE_BASE.items():
        if key in normalized:
            return response
    return None


class StudioAssistant:
    def __init__(self, llm: LLMProvider | None = None) -> None:
        self._llm = llm

    def ask(self, query: str) -> AppResponse:
        known = lookup(query)
        if known is not None:
            return known
        if self._llm is None or not query.strip():
            return FALLBACK_RESPONSE

        try:
            answer = self._llm.chat(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": query},
                ]
            )
        except OpenAIError as e:
            logger.warning("Assistant LLM call failed", extra={"error": str(e)})
            return FALLBACK_RESPONSE

        if not answer.strip():
            return FALLBACK_RESPONSE
        return AppResponse(answer=answer.strip(), source="llm")
