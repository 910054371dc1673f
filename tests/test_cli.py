from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from chatanchor.cli import main

from conftest import conversation


@pytest.fixture
def page(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(conversation(["How do I install it?", "What about upgrades?"]), encoding="utf-8")
    return path


@pytest.fixture
def runner(tmp_path, monkeypatch) -> CliRunner:
    monkeypatch.setenv("CHATANCHOR_CONFIG_DIR", str(tmp_path / "config"))
    return CliRunner()


def test_toc_json(runner, page) -> None:
    result = runner.invoke(main, ["toc", str(page), "--format", "json"])

    assert result.exit_code == 0, result.output
    entries = json.loads(result.output)
    assert [e["index"] for e in entries] == [1, 2]
    assert entries[0]["id"] == "conversation-turn-1"
    assert entries[0]["summary_text"] == "How do I install it?"


def test_toc_table(runner, page) -> None:
    result = runner.invoke(main, ["toc", str(page)])

    assert result.exit_code == 0, result.output
    assert "Q1" in result.output
    assert "Q2" in result.output


def test_toc_empty_transcript(runner, tmp_path) -> None:
    empty = tmp_path / "empty.html"
    empty.write_text("<html><body><main></main></body></html>", encoding="utf-8")

    result = runner.invoke(main, ["toc", str(empty)])

    assert result.exit_code == 0
    assert "No questions found" in result.output


def test_render_to_file(runner, page, tmp_path) -> None:
    output = tmp_path / "panel.html"

    result = runner.invoke(main, ["render", str(page), "-o", str(output)])

    assert result.exit_code == 0, result.output
    markup = output.read_text(encoding="utf-8")
    assert "ca-panel" in markup
    assert "How do I install it?" in markup


def test_render_with_search(runner, page) -> None:
    result = runner.invoke(main, ["render", str(page), "--search", "upgrades"])

    assert result.exit_code == 0, result.output
    assert "What about upgrades?" in result.output
    assert "How do I install it?" not in result.output


def test_labels_set_list_and_render(runner, page) -> None:
    result = runner.invoke(main, ["labels", "set", "abc-123", "conversation-turn-1", "Setup"])
    assert result.exit_code == 0, result.output

    listed = runner.invoke(main, ["labels", "list", "abc-123"])
    assert listed.exit_code == 0
    assert "Setup" in listed.output

    rendered = runner.invoke(main, ["render", str(page), "--conversation", "abc-123"])
    assert "Setup" in rendered.output


def test_labels_delete(runner) -> None:
    runner.invoke(main, ["labels", "set", "abc-123", "conversation-turn-1", "Setup"])

    result = runner.invoke(main, ["labels", "delete", "abc-123", "conversation-turn-1"])

    assert result.exit_code == 0
    listed = runner.invoke(main, ["labels", "list"])
    assert "Setup" not in listed.output


def test_labels_export_import(runner, tmp_path, monkeypatch) -> None:
    runner.invoke(main, ["labels", "set", "abc-123", "conversation-turn-1", "Setup"])
    exported = tmp_path / "labels.json"
    assert runner.invoke(main, ["labels", "export", str(exported)]).exit_code == 0

    monkeypatch.setenv("CHATANCHOR_CONFIG_DIR", str(tmp_path / "other"))
    result = runner.invoke(main, ["labels", "import", str(exported)])

    assert result.exit_code == 0, result.output
    assert "1 conversation" in result.output
    assert "Setup" in runner.invoke(main, ["labels", "list"]).output


@pytest.mark.parametrize("command", ["toc", "render"])
def test_corrupt_label_store_is_reported(runner, page, tmp_path, command) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "labels.yaml").write_text("conversations: [unclosed", encoding="utf-8")

    result = runner.invoke(main, [command, str(page), "--conversation", "abc-123"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Could not read" in result.output


def test_labels_list_reports_corrupt_store(runner, tmp_path) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "labels.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    result = runner.invoke(main, ["labels", "list"])

    assert result.exit_code == 1
    assert "not a mapping" in result.output
