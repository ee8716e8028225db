"""Tests for the main.py command-line entry point."""

import json
from pathlib import Path

import main as cli
from versebot.scheduler import Scheduler, TickResult

from tests.sample_data import SAMPLE_CORPUS


def _write_config(tmp_path: Path, corpus=SAMPLE_CORPUS) -> str:
    corpus_path = tmp_path / "kjv.json"
    if corpus is not None:
        corpus_path.write_text(json.dumps(corpus), encoding="utf-8")

    catalog_path = tmp_path / "topics.yaml"
    catalog_path.write_text(
        "topics:\n"
        "  encouragement:\n"
        "    - {book: Joshua, chapter: 1, verse: 9}\n"
        "  faith:\n"
        "    - {book: Romans, chapter: 1, verse: 17}\n"
        "keywords:\n"
        "  - {keyword: afraid, topic: encouragement}\n",
        encoding="utf-8",
    )

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"timezone: UTC\n"
        f"corpus:\n  path: {corpus_path}\n"
        f"catalog:\n  path: {catalog_path}\n"
        f"storage:\n  users_path: {tmp_path / 'users.json'}\n  ledger_path: {tmp_path / 'sent.json'}\n"
        f"logging:\n  log_file: {tmp_path / 'logs' / 'versebot.log'}\n  console_output: false\n",
        encoding="utf-8",
    )
    return str(config_path)


def test_list_topics(tmp_path, capsys):
    code = cli.main(["--config", _write_config(tmp_path), "--list-topics"])

    assert code == 0
    assert capsys.readouterr().out.split() == ["encouragement", "faith"]


def test_search(tmp_path, capsys):
    code = cli.main(["--config", _write_config(tmp_path), "--search", "fear not be strong", "--limit", "1"])

    assert code == 0
    out = capsys.readouterr().out
    assert out.startswith("Deuteronomy 31:6\n")
    assert "Joshua 1:9" not in out


def test_verify_text_flags_unknown_refs(tmp_path, capsys):
    code = cli.main(["--config", _write_config(tmp_path), "--verify-text", "Joshua 1:9 and Fakebook 1:1"])

    assert code == 2
    out = capsys.readouterr().out
    assert "ok       Joshua 1:9" in out
    assert "missing  Fakebook 1:1" in out


def test_missing_corpus_is_fatal(tmp_path):
    code = cli.main(["--config", _write_config(tmp_path, corpus=None), "--list-topics"])
    assert code == 1


def test_empty_corpus_is_fatal(tmp_path):
    code = cli.main(["--config", _write_config(tmp_path, corpus=[]), "--list-topics"])
    assert code == 1


def test_once_runs_single_tick(tmp_path, monkeypatch):
    ticks = []

    def _fake_tick(self, now=None):
        ticks.append(now)
        return TickResult(hhmm="07:30")

    monkeypatch.setattr(Scheduler, "tick", _fake_tick)
    code = cli.main(["--config", _write_config(tmp_path), "--once"])

    assert code == 0
    assert ticks == [None]
