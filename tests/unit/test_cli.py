"""
Unit tests for the command-line interface.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from passagelink.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path: Path, article_html: str) -> Path:
    (tmp_path / "page.html").write_text(article_html, encoding="utf-8")
    (tmp_path / "summary.txt").write_text(
        "* Carbon taxes are the main climate policy tool\n"
        "* Coral reefs and marine life suffer as the ocean warms\n"
        "* Urban streets and green roofs keep cities cool\n",
        encoding="utf-8",
    )
    (tmp_path / "passagelink.yaml").write_text("extraction:\n  readability_order: [soup_fallback]\n", encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("passagelink.cli.configure_logging") as configure:
        yield configure


def _invoke(runner, workspace, *args):
    return runner.invoke(cli, ["--config", str(workspace / "passagelink.yaml"), *args], catch_exceptions=False)


class TestExtractCommand:
    def test_lists_targets_and_writes_report(self, runner, workspace):
        output = workspace / "out" / "targets.json"
        result = _invoke(runner, workspace, "extract", str(workspace / "page.html"), "--output", str(output))

        assert result.exit_code == 0
        assert "Targets in page.html" in result.output
        report = json.loads(output.read_text(encoding="utf-8"))
        assert [target["tag"] for target in report["targets"]] == ["P", "P", "IMG", "P", "P"]
        assert report["report"]["parser"] == "soup_fallback"

    def test_configured_tree_builder(self, runner, workspace):
        (workspace / "passagelink.yaml").write_text(
            "extraction:\n  parser: lxml\n  readability_order: [soup_fallback]\n", encoding="utf-8"
        )
        output = workspace / "targets.json"
        result = _invoke(runner, workspace, "extract", str(workspace / "page.html"), "--output", str(output))

        assert result.exit_code == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        assert [target["tag"] for target in report["targets"]] == ["P", "P", "IMG", "P", "P"]

    def test_short_page(self, runner, workspace):
        page = workspace / "short.html"
        page.write_text("<html><body><p>Too short.</p></body></html>", encoding="utf-8")
        result = _invoke(runner, workspace, "extract", str(page))

        assert result.exit_code == 0
        assert "No targets found" in result.output


class TestKeypointsCommand:
    def test_lists_key_points(self, runner, workspace):
        result = _invoke(runner, workspace, "keypoints", str(workspace / "summary.txt"))

        assert result.exit_code == 0
        assert "Coral reefs and marine life" in result.output


class TestLinkCommand:
    def test_links_summary_to_page(self, runner, workspace, keyword_embedder):
        output = workspace / "session.json"
        with patch("passagelink.cli.SentenceTransformerEmbedder", return_value=keyword_embedder):
            result = _invoke(
                runner, workspace, "link", str(workspace / "page.html"), str(workspace / "summary.txt"), "-o", str(output)
            )

        assert result.exit_code == 0
        state = json.loads(output.read_text(encoding="utf-8"))
        assert [entry["text"] for entry in state["key_points"]][0] == "Carbon taxes are the main climate policy tool"
        assert len(state["matches"]) == 3
        assert all(match["targets"] for match in state["matches"])


class TestHighlightCommand:
    def test_marks_sentence(self, runner, workspace, paragraphs):
        report_path = workspace / "targets.json"
        _invoke(runner, workspace, "extract", str(workspace / "page.html"), "-o", str(report_path))
        first = json.loads(report_path.read_text(encoding="utf-8"))["targets"][0]

        html_path = workspace / "marked.html"
        result = _invoke(
            runner,
            workspace,
            "highlight",
            str(workspace / "page.html"),
            "--target",
            str(first["id"]),
            "--sentence",
            "Carbon pricing puts a cost on emissions",
            "-o",
            str(html_path),
        )

        assert result.exit_code == 0
        assert '<span class="highlightable">Carbon pricing puts a cost on emissions</span>' in html_path.read_text(
            encoding="utf-8"
        )

    def test_unknown_target_fails(self, runner, workspace):
        result = _invoke(
            runner, workspace, "highlight", str(workspace / "page.html"), "--target", "9999", "--sentence", "x"
        )
        assert result.exit_code == 1
