from __future__ import annotations

import dataclasses
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path

import typer

from .access.memory import MemoryDocumentStore
from .access.timeout import TimeoutProviderAccess
from .config import StackConfig
from .models import DocumentStack
from .task import LoadDocStackTask, QueueHost

app = typer.Typer(add_completion=False, no_args_is_help=True)

SAMPLE_TREE = """authority = "auth"
scheme = "doc"
supports_find_path = true

[[roots]]
id = "root1"
title = "Home"
document_id = "0"

[[documents]]
id = "0"
name = "Home"

[[documents]]
id = "1"
name = "Projects"
parent = "0"

[[documents]]
id = "42"
name = "report.pdf"
parent = "1"
mime_type = "application/pdf"
"""

def _resolve_log_path(log_path_template: str | None) -> str | None:
    """Resolve log file path with date/time pattern substitution.

    Supports:
    - {date}: YYYYMMDD (e.g., 20260123)
    - {datetime}: YYYYMMDD_HHMMSS (e.g., 20260123_142030)
    """
    if not log_path_template:
        return None

    now = datetime.now()
    resolved = (
        log_path_template
        .replace("{date}", now.strftime("%Y%m%d"))
        .replace("{datetime}", now.strftime("%Y%m%d_%H%M%S"))
    )

    log_path = Path(resolved)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return str(log_path)

def _setup_logging(log_file: str | None, log_level: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, log_level.upper(), logging.INFO)

    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(fmt, datefmt))
    handlers.append(console)

    if log_file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(logging.Formatter(fmt, datefmt))
        handlers.append(file_handler)

    logger = logging.getLogger("docstack")
    logger.setLevel(level)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    for h in handlers:
        logger.addHandler(h)

def _load_config(config: str | None) -> StackConfig:
    if not config:
        return StackConfig.from_env()
    try:
        return StackConfig.from_toml(config)
    except FileNotFoundError as e:
        raise typer.BadParameter(f"Config file not found: {config}") from e
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

def _load_tree(tree: str) -> MemoryDocumentStore:
    try:
        return MemoryDocumentStore.from_toml(tree)
    except FileNotFoundError as e:
        raise typer.BadParameter(f"Tree file not found: {tree}") from e
    except ValueError as e:
        raise typer.BadParameter(f"Invalid tree file {tree}: {e}") from e

@app.command()
def init(tree: str = typer.Option("tree.toml", help="Write a sample document tree to this path if missing"),
         out: str = typer.Option("config.toml", help="Write example config to this path")):
    """Write a starter config.toml and sample tree."""
    outp = Path(out)
    outp.write_text("""[features]
# Ask providers for the native document path.
# DOCSTACK_ENABLE_FIND_PATH overrides this when set.
enable_find_path = true

[provider]
# 0 disables the deadline
find_path_timeout_ms = 5000

[executor]
max_workers = 1

[logging]
level = "INFO"
# file = "logs/docstack_{date}.log"
""", encoding="utf-8")
    typer.echo(f"Wrote {outp}")

    treep = Path(tree)
    if not treep.exists():
        treep.write_text(SAMPLE_TREE, encoding="utf-8")
        typer.echo(f"Wrote {treep}")

@app.command()
def resolve(
    uri: str,
    tree: str = typer.Option(..., help="Document tree file (TOML)"),
    config: str = typer.Option(None, help="Config file (TOML)"),
    find_path: bool = typer.Option(None, "--find-path/--no-find-path", help="Override enable_find_path config"),
    outcome: bool = typer.Option(False, "--outcome", help="Print the resolution status along with the stack"),
    timeout: float = typer.Option(30.0, help="Seconds to wait for the lookup"),
    log_file: str = typer.Option(None, "--log-file", "-l", help="Log file path"),
    log_level: str = typer.Option(None, "--log-level", help="Log level: DEBUG, INFO, WARNING, ERROR"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"),
):
    """Resolve the root and ancestor chain of a document."""
    cfg = _load_config(config)
    if find_path is not None:
        cfg = dataclasses.replace(cfg, enable_find_path=find_path)

    _setup_logging(_resolve_log_path(log_file or cfg.log_file), log_level or cfg.log_level, verbose)

    store = _load_tree(tree)
    providers = store
    if cfg.find_path_timeout_ms > 0:
        providers = TimeoutProviderAccess(inner=store, timeout_ms=cfg.find_path_timeout_ms)

    host = QueueHost()
    delivered: list[DocumentStack | None] = []
    executor = ThreadPoolExecutor(max_workers=cfg.max_workers, thread_name_prefix="docstack")
    try:
        try:
            task = LoadDocStackTask(
                host, uri, store, store, providers, delivered.append, config=cfg, executor=executor,
            )
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e

        task.execute()
        if not host.run_until(lambda: task.finished, timeout=timeout):
            typer.echo(f"Timed out waiting for {uri}", err=True)
            raise typer.Exit(code=2)
    finally:
        host.close()
        executor.shutdown(wait=False, cancel_futures=True)
        if isinstance(providers, TimeoutProviderAccess):
            providers.close()

    stack = delivered[0]
    if outcome:
        typer.echo(json.dumps(task.outcome.to_dict(), indent=2))
    else:
        typer.echo(json.dumps(stack.to_dict() if stack is not None else None, indent=2))

    if stack is None:
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
