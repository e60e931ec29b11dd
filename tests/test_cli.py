"""Tests for the docstack command line."""
from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from typer.testing import CliRunner

import docstack.cli as cli
from docstack.cli import SAMPLE_TREE, app
from docstack.config import ENABLE_FIND_PATH_ENV

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv(ENABLE_FIND_PATH_ENV, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("docstack")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    p = tmp_path / "tree.toml"
    p.write_text(SAMPLE_TREE, encoding="utf-8")
    return p


@pytest.fixture
def pool_sizes(monkeypatch) -> list[int]:
    """Record the max_workers of every pool the CLI creates."""
    sizes: list[int] = []

    class RecordingPool(ThreadPoolExecutor):
        def __init__(self, max_workers=None, **kwargs):
            sizes.append(max_workers)
            super().__init__(max_workers=max_workers, **kwargs)

    monkeypatch.setattr(cli, "ThreadPoolExecutor", RecordingPool)
    return sizes


def _write_config(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "config.toml"
    p.write_text(text, encoding="utf-8")
    return p


class TestResolveCommand:
    def test_prints_stack(self, tree: Path):
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--log-level", "ERROR"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["root"]["root_id"] == "root1"
        assert [d["document_id"] for d in data["documents"]] == ["1", "42"]
        assert data["documents"][-1]["display_name"] == "report.pdf"

    def test_outcome_flag(self, tree: Path):
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--outcome", "--log-level", "ERROR"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["status"] == "resolved"
        assert data["stack"]["documents"][0]["document_id"] == "1"

    def test_disabled_exits_1(self, tree: Path):
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--no-find-path", "--log-level", "ERROR"])
        assert result.exit_code == 1
        assert "null" in result.stdout

    def test_disabled_by_config(self, tree: Path, tmp_path: Path):
        cfg = _write_config(tmp_path, "[features]\nenable_find_path = false\n[logging]\nlevel = \"ERROR\"\n")
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--config", str(cfg), "--outcome"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["status"] == "disabled"

    def test_timeout_config(self, tree: Path, tmp_path: Path):
        cfg = _write_config(tmp_path, "[provider]\nfind_path_timeout_ms = 5000\n[logging]\nlevel = \"ERROR\"\n")
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--config", str(cfg)])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["root"]["title"] == "Home"

    def test_max_workers_sizes_background_pool(self, tree: Path, tmp_path: Path, pool_sizes: list[int]):
        cfg = _write_config(tmp_path, "[executor]\nmax_workers = 3\n[logging]\nlevel = \"ERROR\"\n")
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--config", str(cfg)])
        assert result.exit_code == 0, result.output
        assert pool_sizes == [3]
        assert json.loads(result.stdout)["documents"][-1]["document_id"] == "42"

    def test_default_pool_has_one_worker(self, tree: Path, pool_sizes: list[int]):
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tree), "--log-level", "ERROR"])
        assert result.exit_code == 0, result.output
        assert pool_sizes == [1]

    def test_missing_tree(self, tmp_path: Path):
        result = runner.invoke(app, ["resolve", "doc://auth/42", "--tree", str(tmp_path / "missing.toml")])
        assert result.exit_code == 2

    def test_bad_uri(self, tree: Path):
        result = runner.invoke(app, ["resolve", "not-a-uri", "--tree", str(tree), "--log-level", "ERROR"])
        assert result.exit_code == 2

    def test_repeated_runs_close_old_log_handlers(self, tree: Path, tmp_path: Path):
        log_file = tmp_path / "logs" / "docstack.log"
        args = ["resolve", "doc://auth/42", "--tree", str(tree), "--log-level", "ERROR", "--log-file", str(log_file)]

        assert runner.invoke(app, args).exit_code == 0
        first = [h for h in logging.getLogger("docstack").handlers if isinstance(h, RotatingFileHandler)]
        assert len(first) == 1

        assert runner.invoke(app, args).exit_code == 0
        handlers = logging.getLogger("docstack").handlers
        assert len(handlers) == 2
        assert first[0] not in handlers
        assert first[0].stream is None
        assert log_file.exists()


class TestInit:
    def test_writes_config_and_tree(self, tmp_path: Path):
        out = tmp_path / "config.toml"
        tree = tmp_path / "tree.toml"
        result = runner.invoke(app, ["init", "--out", str(out), "--tree", str(tree)])
        assert result.exit_code == 0, result.output
        assert "enable_find_path = true" in out.read_text(encoding="utf-8")
        assert "max_workers = 1" in out.read_text(encoding="utf-8")
        assert tree.read_text(encoding="utf-8") == SAMPLE_TREE

    def test_keeps_existing_tree(self, tmp_path: Path):
        tree = tmp_path / "tree.toml"
        tree.write_text("authority = \"mine\"\n", encoding="utf-8")
        result = runner.invoke(app, ["init", "--out", str(tmp_path / "config.toml"), "--tree", str(tree)])
        assert result.exit_code == 0, result.output
        assert tree.read_text(encoding="utf-8") == "authority = \"mine\"\n"
