"""Main entry point for the evidence-rewrite application."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src import __version__
from src.config.settings import Settings
from src.utils.logging import configure_logging

SECTION_TYPES = ["experience", "projects", "summary", "skills", "headline"]


def _csv_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, payload: object) -> None:
    def _default(value: object):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        model_dump = getattr(value, "model_dump", None)
        if callable(model_dump):
            return model_dump(mode="json")
        return str(value)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, indent=2, default=_default),
        encoding="utf-8",
    )


def _resolve_out_path(settings: Settings, out: Path) -> Path:
    # Bare file names go to the configured output directory
    if out.is_absolute() or out.parent != Path("."):
        return out
    return settings.output_dir / out


def _emit(settings: Settings, payload: object, out: Path | None) -> None:
    text = json.dumps(
        payload.to_dict() if hasattr(payload, "to_dict") else payload, indent=2
    )
    print(text)
    if out is not None:
        path = _resolve_out_path(settings, out)
        _write_json(path, payload)
        print(f"Wrote: {path}", file=sys.stderr)


def _add_out_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Also write the JSON result to this file",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="evidence-rewrite",
        description="evidence-rewrite: resume rewriting that never invents facts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src bullet "Worked on backend APIs" --issue weak_verb --tools Docker
  python -m src section --input section.json --out section_result.json
  python -m src check "Responsible for managing the team"
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )

    subparsers = parser.add_subparsers(
        dest="mode",
        title="commands",
        description="Available commands",
    )

    # Bullet rewrite
    bullet_parser = subparsers.add_parser("bullet", help="Rewrite a single bullet")
    bullet_parser.add_argument("text", help="Bullet text to rewrite")
    bullet_parser.add_argument(
        "--issue",
        action="append",
        default=[],
        dest="issues",
        help="Issue code to address (repeatable), e.g. weak_verb, no_metric, too_vague",
    )
    bullet_parser.add_argument("--target-role", default=None, help="Role being targeted")
    bullet_parser.add_argument(
        "--skills", type=_csv_list, default=[], help="Comma-separated resume skills"
    )
    bullet_parser.add_argument(
        "--tools", type=_csv_list, default=[], help="Comma-separated resume tools"
    )
    bullet_parser.add_argument(
        "--section-type",
        choices=SECTION_TYPES,
        default=None,
        help="Section the bullet belongs to",
    )
    _add_out_argument(bullet_parser)

    # Summary rewrite
    summary_parser = subparsers.add_parser(
        "summary", help="Rewrite a summary from a JSON request file"
    )
    summary_parser.add_argument(
        "--input", type=Path, required=True, help="Path to a summary request JSON file"
    )
    _add_out_argument(summary_parser)

    # Section rewrite
    section_parser = subparsers.add_parser(
        "section", help="Rewrite a whole section from a JSON request file"
    )
    section_parser.add_argument(
        "--input", type=Path, required=True, help="Path to a section request JSON file"
    )
    _add_out_argument(section_parser)

    # Deterministic checks (no LLM)
    check_parser = subparsers.add_parser(
        "check", help="Report whether a bullet can be improved (no LLM call)"
    )
    check_parser.add_argument("text", help="Bullet text to analyze")
    _add_out_argument(check_parser)

    plan_parser = subparsers.add_parser(
        "plan", help="Print the micro-action plan for a bullet (no LLM call)"
    )
    plan_parser.add_argument("text", help="Bullet text to plan")
    plan_parser.add_argument(
        "--issue",
        action="append",
        default=[],
        dest="issues",
        help="Issue code to address (repeatable)",
    )
    _add_out_argument(plan_parser)

    return parser


def _build_bullet_request(parsed: argparse.Namespace) -> dict:
    request: dict = {
        "type": "bullet",
        "bullet": parsed.text,
        "issues": parsed.issues,
        "target_role": parsed.target_role,
    }
    if parsed.skills or parsed.tools:
        request["extracted"] = {"skills": parsed.skills, "tools": parsed.tools}
    if parsed.section_type:
        request["context"] = {"section_type": parsed.section_type}
    return request


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    # Load settings
    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Configure logging
    log_level = parsed.log_level or settings.log_level
    logger = configure_logging(level=log_level)

    # If no command specified, show help
    if parsed.mode is None:
        parser.print_help()
        return 0

    logger.info(f"evidence-rewrite v{__version__} running {parsed.mode}")

    from src.rewrite.errors import ExecutionError
    from src.rewrite.service import RewriteService

    try:
        service = RewriteService()
    except (ValueError, FileNotFoundError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    try:
        if parsed.mode == "check":
            improvable, reasons = service.can_improve(parsed.text)
            _emit(settings, {"can_improve": improvable, "reasons": reasons}, parsed.out)
            return 0

        if parsed.mode == "plan":
            plan = service.plan(parsed.text, issues=parsed.issues)
            _emit(settings, plan.model_dump(mode="json"), parsed.out)
            return 0

        if parsed.mode == "bullet":
            request = _build_bullet_request(parsed)
        else:
            input_path: Path = parsed.input
            if not input_path.exists():
                print(f"Error: input file not found: {input_path}", file=sys.stderr)
                return 1
            try:
                request = _load_json(input_path)
            except json.JSONDecodeError as e:
                print(f"Error: invalid JSON in {input_path}: {e}", file=sys.stderr)
                return 1
            if not isinstance(request, dict):
                print(f"Error: {input_path} must contain a JSON object", file=sys.stderr)
                return 1
            request_type = request.setdefault("type", parsed.mode)
            if request_type != parsed.mode:
                print(
                    f"Error: {input_path} holds a '{request_type}' request, "
                    f"not '{parsed.mode}'",
                    file=sys.stderr,
                )
                return 1

        result = asyncio.run(service.rewrite(request))
        _emit(settings, result, parsed.out)
        return 0

    except ExecutionError as e:
        logger.error(f"{e.code.value}: {e}")
        print(json.dumps(e.user_friendly(), indent=2), file=sys.stderr)
        for field_error in e.details.get("errors", []):
            print(f"- {field_error['field']}: {field_error['message']}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
