"""Oracle CLI -- explain records, vote, and inspect the feedback log.

Usage::

    python -m sigil_oracle.cli explain T-1 --context severity=high --context source=ids
    python -m sigil_oracle.cli show T-1 --json
    python -m sigil_oracle.cli feedback T-1 up
    python -m sigil_oracle.cli log
    python -m sigil_oracle.cli votes --json
    python -m sigil_oracle.cli clear

Log lines go to stderr (WARNING+ unless ``--verbose``) so stdout carries
only command output.  Exit status is 0 on success and 1 when an
explanation failed or a vote was ignored.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import httpx

from sigil_oracle.api.schemas import InsightResponse
from sigil_oracle.models.insight import InsightEntry, Vote

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _parse_context(pairs: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into a context dict.

    Values that parse as JSON (numbers, booleans, lists) keep their type;
    anything else is taken as a plain string.
    """
    context: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            msg = f"expected key=value, got {pair!r}"
            raise argparse.ArgumentTypeError(msg)
        try:
            context[key] = json.loads(raw)
        except ValueError:
            context[key] = raw
    return context


def _format_entry(record_id: str, entry: InsightEntry | None) -> str:
    view = InsightResponse.from_entry(record_id, entry)
    lines = [f"{record_id} [{view.status}]"]
    if view.text is not None:
        lines.append("")
        lines.append(view.text)
    if view.error is not None:
        lines.append(f"Error: {view.error}")
    if view.fetched_at is not None:
        lines.append(f"Fetched: {view.fetched_at.isoformat()}")
    if view.model or view.provenance:
        lines.append(f"Source: {view.provenance or '-'} ({view.model or 'unknown model'})")
    if view.feedback is not None:
        lines.append(f"Feedback: {view.feedback.value}")
    return "\n".join(lines)


def _format_entry_json(record_id: str, entry: InsightEntry | None) -> str:
    return InsightResponse.from_entry(record_id, entry).model_dump_json(indent=2)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_explain(args: argparse.Namespace, components: dict[str, Any]) -> int:
    coordinator = components["coordinator"]
    entry = await coordinator.request_insight(args.record_id, args.context)
    formatter = _format_entry_json if args.json_output else _format_entry
    print(formatter(args.record_id, entry))
    return 1 if entry.error is not None else 0


async def _cmd_show(args: argparse.Namespace, components: dict[str, Any]) -> int:
    entry = components["coordinator"].get_insight(args.record_id)
    formatter = _format_entry_json if args.json_output else _format_entry
    print(formatter(args.record_id, entry))
    return 0


async def _cmd_feedback(args: argparse.Namespace, components: dict[str, Any]) -> int:
    recorded = components["ledger"].record_feedback(args.record_id, args.vote)
    if recorded:
        print(f"Recorded {args.vote} vote for {args.record_id}")
        return 0
    print(
        f"Vote ignored for {args.record_id}: needs a ready explanation and no earlier vote",
        file=sys.stderr,
    )
    return 1


async def _cmd_log(args: argparse.Namespace, components: dict[str, Any]) -> int:
    ledger = components["ledger"]
    records = ledger.audit_log()
    summary = ledger.summary()
    if args.json_output:
        payload = {
            "summary": summary.model_dump(mode="json"),
            "records": [r.model_dump(mode="json") for r in records],
        }
        print(json.dumps(payload, indent=2))
        return 0

    for record in records:
        print(f"{record.timestamp.isoformat()}  {record.vote.value:<4}  {record.record_id}")
    print(f"{summary.total} votes: {summary.up} up, {summary.down} down")
    return 0


async def _cmd_votes(args: argparse.Namespace, components: dict[str, Any]) -> int:
    votes = components["ledger"].remembered_votes()
    if args.json_output:
        print(json.dumps({record_id: vote.value for record_id, vote in sorted(votes.items())}, indent=2))
        return 0

    for record_id, vote in sorted(votes.items()):
        print(f"{vote.value:<4}  {record_id}")
    print(f"{len(votes)} remembered votes")
    return 0


async def _cmd_clear(args: argparse.Namespace, components: dict[str, Any]) -> int:
    cleared = len(components["cache"])
    components["coordinator"].clear_all()
    print(f"Cleared {cleared} cached insights")
    return 0


_COMMANDS = {
    "explain": _cmd_explain,
    "show": _cmd_show,
    "feedback": _cmd_feedback,
    "log": _cmd_log,
    "votes": _cmd_votes,
    "clear": _cmd_clear,
}


async def _run(args: argparse.Namespace, components: dict[str, Any] | None = None) -> int:
    """Dispatch *args* to its command.

    Builds the oracle from settings unless *components* are given.
    """
    handler = _COMMANDS[args.command]
    if components is not None:
        return await handler(args, components)

    # Deferred: sigil_oracle.main configures logging to stdout on import,
    # so it is re-pointed at stderr straight after.
    from sigil_oracle.main import build_oracle
    from sigil_oracle.utils.logging import configure_logging

    configure_logging(
        log_level="DEBUG" if args.verbose else "WARNING",
        stream=sys.stderr,
    )
    async with httpx.AsyncClient(timeout=30.0) as http_client:
        return await handler(args, build_oracle(http_client=http_client))


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m sigil_oracle.cli",
        description="Explain threats and recommendations, and vote on the explanations.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log at DEBUG level (to stderr).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    explain_parser = subparsers.add_parser("explain", help="Explain a record")
    explain_parser.add_argument("record_id", help="Threat or recommendation ID")
    explain_parser.add_argument(
        "--context", "-c",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Context field for the explanation (repeatable).",
    )
    explain_parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the entry as JSON.",
    )

    show_parser = subparsers.add_parser("show", help="Show the cached entry for a record")
    show_parser.add_argument("record_id")
    show_parser.add_argument("--json", action="store_true", dest="json_output")

    feedback_parser = subparsers.add_parser("feedback", help="Vote on an explanation")
    feedback_parser.add_argument("record_id")
    feedback_parser.add_argument("vote", choices=[v.value for v in Vote])

    log_parser = subparsers.add_parser("log", help="Print the feedback audit log")
    log_parser.add_argument("--json", action="store_true", dest="json_output")

    votes_parser = subparsers.add_parser(
        "votes", help="List remembered votes, including those on cleared insights"
    )
    votes_parser.add_argument("--json", action="store_true", dest="json_output")

    subparsers.add_parser("clear", help="Clear the insight cache (votes are kept)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv* and run the command; returns the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "explain":
        try:
            args.context = _parse_context(args.context)
        except argparse.ArgumentTypeError as exc:
            parser.error(str(exc))

    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
