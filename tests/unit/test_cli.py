from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from src.rewrite.errors import invalid_input_error
from src.rewrite.models import (
    BulletRewriteResult,
    RewriteChanges,
    ValidationResult,
)


@pytest.fixture(autouse=True)
def cli_env(isolated_env, monkeypatch, tmp_path):
    """Run the CLI with default settings and restore logging afterwards."""
    from src.utils.logging import reset_logging

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OUTPUT_DIR", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    yield
    reset_logging()


def _bullet_result(original: str, improved: str) -> BulletRewriteResult:
    return BulletRewriteResult(
        original=original,
        improved=improved,
        reasoning="Stronger verb",
        changes=RewriteChanges(stronger_verb=True),
        validation=ValidationResult(passed=True),
        confidence="high",
        estimated_score_gain=2,
    )


def test_cli_without_command_prints_help(capsys) -> None:
    from src.__main__ import main

    assert main([]) == 0
    assert "evidence-rewrite" in capsys.readouterr().out


def test_cli_parser_supports_subcommands() -> None:
    from src.__main__ import create_parser

    parser = create_parser()

    bullet_args = parser.parse_args(
        [
            "bullet",
            "Worked on APIs",
            "--issue",
            "weak_verb",
            "--issue",
            "no_metric",
            "--tools",
            "Docker, Python",
        ]
    )
    assert bullet_args.mode == "bullet"
    assert bullet_args.issues == ["weak_verb", "no_metric"]
    assert bullet_args.tools == ["Docker", "Python"]

    section_args = parser.parse_args(["section", "--input", "section.json"])
    assert section_args.mode == "section"
    assert section_args.input == Path("section.json")

    assert parser.parse_args(["check", "Led team"]).mode == "check"
    assert parser.parse_args(["plan", "Led team"]).mode == "plan"


def test_cli_check_reports_reasons(capsys) -> None:
    from src.__main__ import main

    exit_code = main(["check", "Responsible for managing the team"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["can_improve"] is True
    assert "weak_verb" in payload["reasons"]


def test_cli_plan_prints_transformations(capsys) -> None:
    from src.__main__ import main

    exit_code = main(["plan", "Worked on backend APIs", "--issue", "no_metric"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    types = [t["type"] for t in payload["transformations"]]
    assert "verb_upgrade" in types
    assert "add_how" in types
    assert payload["goal"] == "impact"


def test_cli_bullet_calls_service(monkeypatch, capsys) -> None:
    from src.__main__ import main

    mock = AsyncMock(return_value=_bullet_result("Worked on APIs", "Built APIs"))
    monkeypatch.setattr("src.rewrite.service.RewriteService.rewrite", mock)

    exit_code = main(
        ["bullet", "Worked on APIs", "--issue", "weak_verb", "--tools", "Docker"]
    )

    assert exit_code == 0
    mock.assert_awaited_once()
    request = mock.call_args.args[0]
    assert request["type"] == "bullet"
    assert request["bullet"] == "Worked on APIs"
    assert request["issues"] == ["weak_verb"]
    assert request["extracted"] == {"skills": [], "tools": ["Docker"]}
    assert json.loads(capsys.readouterr().out)["improved"] == "Built APIs"


def test_cli_bullet_writes_output_file(monkeypatch, tmp_path) -> None:
    from src.__main__ import main

    mock = AsyncMock(return_value=_bullet_result("Worked on APIs", "Built APIs"))
    monkeypatch.setattr("src.rewrite.service.RewriteService.rewrite", mock)

    exit_code = main(["bullet", "Worked on APIs", "--out", "result.json"])

    assert exit_code == 0
    written = json.loads((tmp_path / "artifacts" / "result.json").read_text())
    assert written["improved"] == "Built APIs"


def test_cli_section_loads_request_file(monkeypatch, tmp_path) -> None:
    from src.__main__ import main

    section_file = tmp_path / "section.json"
    section_file.write_text(
        json.dumps({"bullets": ["Led team", "Built API"]}), encoding="utf-8"
    )
    mock = AsyncMock(return_value=_bullet_result("Led team", "Led team"))
    monkeypatch.setattr("src.rewrite.service.RewriteService.rewrite", mock)

    exit_code = main(["section", "--input", str(section_file)])

    assert exit_code == 0
    assert mock.call_args.args[0]["type"] == "section"


def test_cli_rejects_request_of_another_type(monkeypatch, tmp_path, capsys) -> None:
    from src.__main__ import main

    section_file = tmp_path / "section.json"
    section_file.write_text(
        json.dumps({"type": "section", "bullets": ["Led team", "Built API"]}),
        encoding="utf-8",
    )
    mock = AsyncMock()
    monkeypatch.setattr("src.rewrite.service.RewriteService.rewrite", mock)

    exit_code = main(["summary", "--input", str(section_file)])

    assert exit_code == 1
    assert "'section' request, not 'summary'" in capsys.readouterr().err
    mock.assert_not_called()


def test_cli_missing_input_file_errors_cleanly(tmp_path) -> None:
    from src.__main__ import main

    assert main(["summary", "--input", str(tmp_path / "missing.json")]) == 1


def test_cli_invalid_json_errors_cleanly(tmp_path) -> None:
    from src.__main__ import main

    bad_file = tmp_path / "bad.json"
    bad_file.write_text("{not json", encoding="utf-8")

    assert main(["section", "--input", str(bad_file)]) == 1


def test_cli_reports_field_errors(monkeypatch, capsys) -> None:
    from src.__main__ import main

    error = invalid_input_error(
        "1 invalid field(s)",
        errors=[{"field": "bullet", "message": "Bullet text is required"}],
    )
    monkeypatch.setattr(
        "src.rewrite.service.RewriteService.rewrite", AsyncMock(side_effect=error)
    )

    exit_code = main(["bullet", "   "])

    assert exit_code == 1
    err = capsys.readouterr().err
    assert "INVALID_INPUT" in err
    assert "- bullet: Bullet text is required" in err
