"""Command line entrypoint.

``generate`` prints the workflow synthesized from a prompt as JSON without touching
any stored state. ``ask`` queries the product assistant.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from workflow_studio import __version__
from workflow_studio.assistant import StudioAssistant
from workflow_studio.config import StudioSettings
from workflow_studio.errors import StudioError
from workflow_studio.graph.synthesizer import generate_workflow_from_prompt
from workflow_studio.llm import LLMFactory
from workflow_studio.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-studio",
        description="Generate workflows from prompts and ask the studio assistant",
    )
    parser.add_argument("--version", action="version", version=f"workflow-studio {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Synthesize a workflow from a prompt")
    generate.add_argument("prompt", help="Natural-language description of the workflow")
    generate.add_argument(
        "--indent", type=int, default=2, help="JSON indentation (0 for a single line)"
    )

    ask = subparsers.add_parser("ask", help="Ask the product assistant a question")
    ask.add_argument("question", help="Question about the studio")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = StudioSettings()
    except ValidationError as e:
        # Logging isn't configured yet.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "generate":
            generated = generate_workflow_from_prompt(args.prompt)
            payload = {
                "name": generated.name,
                "description": generated.description,
                "graph": generated.graph.model_dump(mode="json"),
            }
            print(json.dumps(payload, indent=args.indent or None, ensure_ascii=False))
            return 0

        assistant = StudioAssistant(LLMFactory.create(settings.llm))
        response = assistant.ask(args.question)
        print(response.answer)
        for question in response.follow_up_questions:
            print(f"- {question}")
        return 0
    except StudioError as e:
        logger.error("Command failed", extra={"command": args.command, "code": e.code})
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
