"""Prompt analysis: free text -> workflow name, mentioned services, trigger and actions.

Trigger/action inference is a fixed, ordered rule table. The first rule whose
predicate holds wins; later rules are never consulted. Reordering ``INTENT_RULES``
changes behaviour.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from workflow_studio.graph.model import SERVICE_CATALOG, ServiceType

DEFAULT_WORKFLOW_NAME = "AI Generated Workflow"

_NAME_PATTERN = re.compile(
    r"(?:create|build) a workflow (?:that|to|which) (.*?)(?:\.|\n|$)", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class WorkflowInfo:
    name: str
    description: str
    trigger: ServiceType
    actions: tuple[ServiceType, ...]
    services_mentioned: tuple[ServiceType, ...]


Predicate = Callable[[str, frozenset[ServiceType]], bool]
ActionPicker = Callable[[frozenset[ServiceType]], tuple[ServiceType, ...]]


@dataclass(frozen=True, slots=True)
class IntentRule:
    """Maps a recognised intent to a trigger and its actions.

    ``predicate`` receives the lower-cased prompt and the mentioned services.
    """

    name: str
    predicate: Predicate
    trigger: ServiceType
    actions: ActionPicker


def _contains_any(text: str, *phrases: str) -> bool:
    return any(p in text for p in phrases)


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        name="github-issues-to-slack",
        predicate=lambda text, services: ServiceType.GITHUB in services
        and _contains_any(text, "new issue", "issues"),
        trigger=ServiceType.GITHUB,
        actions=lambda _services: (ServiceType.SLACK,),
    ),
    IntentRule(
        name="calendar-to-email",
        predicate=lambda text, services: ServiceType.GOOGLE_CALENDAR in services
        and "calendar" in text,
        trigger=ServiceType.GOOGLE_CALENDAR,
        actions=lambda _services: (ServiceType.EMAIL,),
    ),
    IntentRule(
        name="email-to-drive",
        predicate=lambda text, services: ServiceType.EMAIL in services and "email" in text,
        trigger=ServiceType.EMAIL,
        actions=lambda services: (
            (ServiceType.GOOGLE_DRIVE,) if ServiceType.GOOGLE_DRIVE in services else ()
        ),
    ),
    IntentRule(
        name="github-pull-requests",
        predicate=lambda text, services: ServiceType.GITHUB in services
        and _contains_any(text, "pr", "pull request"),
        trigger=ServiceType.GITHUB,
        actions=lambda services: (
            (ServiceType.DISCORD,) if ServiceType.DISCORD in services else (ServiceType.SLACK,)
        ),
    ),
)


def extract_name(prompt: str) -> str:
    match = _NAME_PATTERN.search(prompt)
    if match is None:
        return DEFAULT_WORKFLOW_NAME
    clause = match.group(1).strip()
    if not clause:
        return DEFAULT_WORKFLOW_NAME
    return clause[0].upper() + clause[1:]


def detect_services(prompt: str) -> tuple[ServiceType, ...]:
    """Return every catalog service whose phrase occurs in the prompt, in catalog order."""

    text = prompt.lower()
    return tuple(s for s in SERVICE_CATALOG if s.phrase and s.phrase in text)


def infer_intent(
    prompt: str,
    services: tuple[ServiceType, ...],
    rules: tuple[IntentRule, ...] = INTENT_RULES,
) -> tuple[ServiceType, tuple[ServiceType, ...]]:
    text = prompt.lower()
    mentioned = frozenset(services)
    for rule in rules:
        if rule.predicate(text, mentioned):
            return rule.trigger, rule.actions(mentioned)
    return ServiceType.MANUAL, ()


def analyze_prompt(prompt: str, rules: tuple[IntentRule, ...] = INTENT_RULES) -> WorkflowInfo:
    """Analyze a natural-language prompt.

    Args:
        prompt: Free text describing the desired automation.
        rules: Ordered intent rules; defaults to ``INTENT_RULES``.

    Returns:
        The extracted ``WorkflowInfo``. The description is always the raw prompt.
    """

    services = detect_services(prompt)
    trigger, actions = infer_intent(prompt, services, rules)
    return WorkflowInfo(
        name=extract_name(prompt),
        description=prompt,
        trigger=trigger,
        actions=actions,
        services_mentioned=services,
    )
