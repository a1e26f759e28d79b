"""Command-line interface for the prior-art novelty pipeline.

Provides subcommands for executing a search strategy, assessing an invention
against prior-art candidates, and querying package information.  Each
subcommand imports its dependencies lazily so that ``prior-art-novelty info``
works even when optional dependencies are missing.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    prior-art-novelty = "prior_art_novelty.cli:main"

Usage examples::

    prior-art-novelty search strategy.yaml --approve --output run.json
    prior-art-novelty assess invention.json --candidates shortlist.json
    prior-art-novelty assess invention.json --strategy strategy.json --approve
    prior-art-novelty assess invention.json --candidates c.json --responses script.json
    prior-art-novelty info
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="prior-art-novelty",
        description=(
            "Prior-art aggregation and staged novelty determination -- CLI for "
            "running search strategies and novelty assessments."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show package version and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity. (default: WARNING)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON pipeline configuration file.  Environment settings apply when omitted.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- search ------------------------------------------------------------
    search_parser = subparsers.add_parser(
        "search",
        help="Execute a search strategy.",
        description="Run the three query variants, merge results and print the shortlist.",
    )
    search_parser.add_argument("strategy", type=str, help="Strategy file (JSON or YAML).")
    search_parser.add_argument(
        "--approve",
        action="store_true",
        default=False,
        help="Approve the strategy for execution if the file does not already.",
    )
    search_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write run, candidates and shortlist as JSON to this file.",
    )

    # -- assess ------------------------------------------------------------
    assess_parser = subparsers.add_parser(
        "assess",
        help="Assess an invention for novelty.",
        description=(
            "Run the two-stage novelty assessment against explicit candidates or "
            "against the shortlist of a fresh search."
        ),
    )
    assess_parser.add_argument(
        "invention", type=str, help="Invention summary file (title, problem, solution)."
    )
    source = assess_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--candidates",
        type=str,
        default=None,
        help="JSON/YAML list of candidates (identifier, title, abstract, relevance).",
    )
    source.add_argument(
        "--strategy",
        type=str,
        default=None,
        help="Search strategy to run first; its shortlist is assessed.",
    )
    assess_parser.add_argument(
        "--approve",
        action="store_true",
        default=False,
        help="Approve the --strategy file for execution.",
    )
    assess_parser.add_argument(
        "--responses",
        type=str,
        default=None,
        help="JSON list of scripted model responses (offline run, no API key).",
    )
    assess_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the assessment and its model calls as JSON to this file.",
    )

    # -- info --------------------------------------------------------------
    subparsers.add_parser(
        "info",
        help="Show package version and dependency status.",
        description="Display version, configuration sources, and optional dependency status.",
    )

    return parser


# =========================================================================
# Helpers
# =========================================================================

def _load_config(args: argparse.Namespace) -> Any:
    from prior_art_novelty.infrastructure.config import PipelineConfig, load_config_from_json

    if args.config is None:
        return PipelineConfig.from_env()
    return load_config_from_json(Path(args.config).read_text(encoding="utf-8"))


def _load_approved_strategy(path: str, approve: bool) -> Any:
    from prior_art_novelty.infrastructure.serialization import load_strategy

    strategy = load_strategy(path)
    if approve and not strategy.approved:
        strategy = strategy.approve()
    return strategy


def _get_model(args: argparse.Namespace) -> Any:
    """Scripted model if ``--responses`` is given, else a real one from API keys."""
    if args.responses is not None:
        from prior_art_novelty.testing import ScriptedChatModel

        responses = json.loads(Path(args.responses).read_text(encoding="utf-8"))
        if not isinstance(responses, list):
            raise ValueError(f"{args.responses}: expected a JSON list of responses")
        return ScriptedChatModel(responses=responses)
    if os.getenv("ANTHROPIC_API_KEY"):
        try:
            from langchain_anthropic import ChatAnthropic
            return ChatAnthropic(model="claude-sonnet-4-5-20250929", temperature=0.0)
        except ImportError:
            pass
    if os.getenv("OPENAI_API_KEY"):
        try:
            from langchain_openai import ChatOpenAI
            return ChatOpenAI(model="gpt-4o", temperature=0.0)
        except ImportError:
            pass
    return None


def _recording_bus() -> tuple[Any, Any]:
    """An event bus whose every event is kept for the output document."""
    from prior_art_novelty.infrastructure.event_bus import EventBus, EventStore

    bus = EventBus()
    events = EventStore()
    bus.subscribe_all(events.append)
    return bus, events


def _write_or_print(payload: dict[str, Any], output: str | None) -> None:
    text = json.dumps(payload, indent=2, default=str)
    if output is None:
        print(text)
        return
    Path(output).write_text(text, encoding="utf-8")
    print(f"Wrote {output}")


# =========================================================================
# Subcommand handlers
# =========================================================================

def _cmd_search(args: argparse.Namespace) -> int:
    """Handle the ``search`` subcommand."""
    from prior_art_novelty.infrastructure.serialization import event_to_dict
    from prior_art_novelty.infrastructure.sources.serpapi import serpapi_sources
    from prior_art_novelty.services.service import PriorArtService

    config = _load_config(args)
    strategy = _load_approved_strategy(args.strategy, args.approve)
    if not config.sources.api_key:
        print("Warning: SERPAPI_API_KEY is not set; sources return no results.", file=sys.stderr)

    bus, events = _recording_bus()
    service = PriorArtService(serpapi_sources(config.sources), event_bus=bus, config=config)
    run_id = service.start_search(strategy)
    run = service.get_run(run_id)

    print(f"Run {run_id}: {run.status.value}, {run.candidate_count} candidates, "
          f"{len(run.shortlisted_ids)} shortlisted, threshold {run.threshold}%")
    for warning in run.warnings:
        print(f"  warning: {warning}")

    _write_or_print(
        {
            "run": run.to_dict(),
            "candidates": [c.to_dict() for c in service.get_run_results(run_id)],
            "shortlist": [s.to_dict() for s in service.get_shortlist(run_id)],
            "events": [event_to_dict(e) for e in events.query(source_id=run_id)],
        },
        args.output,
    )
    return 0 if run.status.value == "COMPLETED" else 1


def _cmd_assess(args: argparse.Namespace) -> int:
    """Handle the ``assess`` subcommand."""
    from prior_art_novelty.infrastructure.llm import ChatModelGateway
    from prior_art_novelty.infrastructure.serialization import (
        candidate_from_dict,
        invention_from_dict,
        event_to_dict,
        load_document,
    )
    from prior_art_novelty.infrastructure.sources.serpapi import (
        SerpApiClient,
        SerpApiDetailLookup,
        serpapi_sources,
    )
    from prior_art_novelty.services.service import PriorArtService

    model = _get_model(args)
    if model is None:
        print(
            "Error: no model available.  Set ANTHROPIC_API_KEY or OPENAI_API_KEY "
            "(with langchain-anthropic / langchain-openai installed) or pass --responses.",
            file=sys.stderr,
        )
        return 1

    config = _load_config(args)
    invention = invention_from_dict(load_document(args.invention))

    detail_lookup = None
    sources: list[Any] = []
    if config.sources.api_key:
        detail_lookup = SerpApiDetailLookup(SerpApiClient(config.sources))
    if args.strategy is not None:
        sources = serpapi_sources(config.sources)

    bus, events = _recording_bus()
    service = PriorArtService(
        sources,
        ChatModelGateway(model),
        detail_lookup=detail_lookup,
        event_bus=bus,
        config=config,
    )

    if args.strategy is not None:
        strategy = _load_approved_strategy(args.strategy, args.approve)
        run_id = service.start_search(strategy)
        assessment_id = service.start_assessment(invention, run_id=run_id)
    else:
        data = load_document(args.candidates)
        if not isinstance(data, list):
            print(f"Error: {args.candidates} must contain a list", file=sys.stderr)
            return 1
        candidates = [candidate_from_dict(item) for item in data]
        assessment_id = service.start_assessment(invention, candidates)

    assessment = service.get_assessment(assessment_id)
    determination = assessment.determination.value if assessment.determination else "-"
    print(f"Assessment {assessment_id}: {assessment.status.value} "
          f"(determination {determination}, confidence {assessment.confidence})")
    if assessment.error:
        print(f"  error: {assessment.error}")

    _write_or_print(
        {
            "assessment": assessment.to_dict(),
            "calls": [c.to_dict() for c in service.list_assessment_calls(assessment_id)],
            "events": [event_to_dict(e) for e in events.query(source_id=assessment_id)],
        },
        args.output,
    )
    return 1 if assessment.status.value in ("FAILED", "ABANDONED") else 0


def _cmd_info(args: argparse.Namespace) -> int:
    """Handle the ``info`` subcommand."""
    from prior_art_novelty import __version__

    print(f"prior-art-novelty v{__version__}")
    print()

    deps = {
        "langchain_core": "Prompt templates and chat model interface (required)",
        "langgraph": "Assessment state machine (required)",
        "pydantic": "Model output validation (required)",
        "numpy": "Score statistics (required)",
        "httpx": "SerpAPI client (required)",
        "yaml": "YAML strategy files",
        "langchain_anthropic": "Anthropic chat models",
        "langchain_openai": "OpenAI chat models",
    }

    print("Dependencies:")
    for pkg, desc in deps.items():
        try:
            mod = __import__(pkg)
            version = getattr(mod, "__version__", "unknown")
            print(f"  [installed] {pkg} {version} -- {desc}")
        except ImportError:
            print(f"  [missing]   {pkg} -- {desc}")

    print()
    print("Environment:")
    for var in ("SERPAPI_API_KEY", "SERP_RATE", "DETAILS_TTL_DAYS",
                "ANTHROPIC_API_KEY", "OPENAI_API_KEY"):
        state = "set" if os.getenv(var) else "unset"
        print(f"  {var}: {state}")

    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version:
        from prior_art_novelty import __version__
        print(f"prior-art-novelty {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handlers: dict[str, Any] = {
        "search": _cmd_search,
        "assess": _cmd_assess,
        "info": _cmd_info,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
