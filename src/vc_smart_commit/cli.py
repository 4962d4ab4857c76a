"""
Command line interface for the vc_smart_commit tool.

This module defines the ``main`` click group used as the entry point of
the ``smartcommit`` command. The commands are thin wrappers around
:class:`vc_smart_commit.orchestrator.CommitOrchestrator`; they render
its result envelopes either as human readable text or as JSON and map
failures onto exit codes.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import click

from vc_smart_commit import __version__
from vc_smart_commit.config.loader import DEFAULT_GIT_CONFIG
from vc_smart_commit.errors import OperationResult
from vc_smart_commit.llm.description_strategy import OllamaDescriptionStrategy
from vc_smart_commit.llm.ollama_client import OllamaClient
from vc_smart_commit.orchestrator import CommitOrchestrator

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6

CATEGORY_EXIT_CODES = {
    "repository": EXIT_NO_REPO,
    "config": EXIT_CONFIG_ERROR,
    "network": EXIT_VCS_FAILURE,
    "conflict": EXIT_VCS_FAILURE,
    "permission": EXIT_VCS_FAILURE,
}

CONFIG_KEYS = list(DEFAULT_GIT_CONFIG.to_dict())


# ---------------------------------------------------------------------------
# Display utilities
# ---------------------------------------------------------------------------

def print_info(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}ℹ {message}")


def print_success(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}✓ {message}")


def print_warning(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}⚠ {message}")


def print_error(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


def print_units(units: List[Dict[str, Any]], outcomes: Optional[List[Dict[str, Any]]] = None) -> None:
    """Print planned or committed units, one block per unit."""
    for idx, unit in enumerate(units):
        outcome = outcomes[idx] if outcomes and idx < len(outcomes) else None
        click.echo(f"\n📦 {click.style(unit['message'], fg='cyan', bold=True)}")
        for file in unit["files"]:
            click.echo(f"   • {file}")
        if outcome is None:
            continue
        if outcome["success"]:
            print_success(f"Committed {str(outcome['commit'])[:7]}", indent=1)
        else:
            print_error(f"Skipped: {outcome['error']}", indent=1)


def _finish(result: OperationResult, as_json: bool) -> None:
    """Report a failed result and exit with the matching code."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        print_error(f"{result.message}: {result.error}")
        suggestion = (result.data or {}).get("suggestion")
        if suggestion:
            print_info(suggestion, indent=1)
    category = (result.data or {}).get("category", "")
    raise click.exceptions.Exit(CATEGORY_EXIT_CODES.get(category, EXIT_GENERIC_ERROR))


def _enable_package_logging() -> None:
    """Let the module loggers reach the handlers configured on the root."""
    for name in list(logging.root.manager.loggerDict):
        if name == "vc_smart_commit" or name.startswith("vc_smart_commit."):
            logging.getLogger(name).propagate = True


def _coerce(key: str, raw: str) -> Any:
    """Convert a command line value to the type of the config field."""
    default = DEFAULT_GIT_CONFIG.to_dict()[key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
        raise click.BadParameter(f"'{raw}' is not a boolean", param_hint="VALUE")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            raise click.BadParameter(f"'{raw}' is not an integer", param_hint="VALUE")
    return raw


def _build_orchestrator(
    ctx: click.Context,
    ai: bool = False,
    ollama_url: str = "http://localhost",
    ollama_port: int = 11434,
    model: Optional[str] = None,
    repo: Optional[str] = None,
) -> CommitOrchestrator:
    orchestrator: CommitOrchestrator = ctx.obj["factory"](default_repo_path=repo)
    if ai:
        client = OllamaClient(
            base_url=ollama_url,
            port=ollama_port,
            model=model or orchestrator.get_config().ai_model,
        )
        if client.is_available():
            orchestrator.describe = OllamaDescriptionStrategy(client)
        else:
            print_warning(
                f"Model {client.model} is not available at {ollama_url}:{ollama_port}; "
                "using heuristic descriptions"
            )
    return orchestrator


def ai_options(func):
    func = click.option("--model", help="Model name; defaults to the configured aiModel.")(func)
    func = click.option("--ollama-port", type=int, default=11434, show_default=True, help="Ollama server port.")(func)
    func = click.option("--ollama-url", default="http://localhost", show_default=True, help="Ollama server base URL.")(func)
    func = click.option("--ai", is_flag=True, help="Ask an Ollama model for commit descriptions.")(func)
    return func


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="smartcommit")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Split pending changes into logical commits and commit them."""
    # force=True so that handlers are reconfigured on every invocation
    # (important for tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    _enable_package_logging()
    ctx.ensure_object(dict)
    ctx.obj.setdefault("factory", CommitOrchestrator)


@main.command()
@click.option("--style", type=click.Choice(["conventional", "simple"]), help="Override the configured commit style.")
@click.option("--push/--no-push", default=None, help="Push after committing (default: configured autoPush).")
@click.option("--repo", type=click.Path(file_okay=False), help="Repository root (default: current directory).")
@click.option("--json", "as_json", is_flag=True, help="Print the result envelope as JSON.")
@ai_options
@click.pass_context
def commit(
    ctx: click.Context,
    style: Optional[str],
    push: Optional[bool],
    repo: Optional[str],
    as_json: bool,
    ai: bool,
    ollama_url: str,
    ollama_port: int,
    model: Optional[str],
) -> None:
    """Group pending changes and create one commit per group."""
    orchestrator = _build_orchestrator(ctx, ai, ollama_url, ollama_port, model, repo)
    result = orchestrator.smart_commit(commit_style=style, auto_push=push)
    if not result.success:
        _finish(result, as_json)

    data = result.data or {}
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif not data.get("commitUnits"):
        print_warning(result.message)
    else:
        print_units(data["commitUnits"], data.get("outcomes"))
        click.echo("")
        print_success(result.message)
        failed = len(data["commitUnits"]) - data["commitsCreated"]
        if failed:
            print_warning(f"{failed} commit unit(s) were skipped")

    if not data.get("commitUnits"):
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    if data.get("commitsCreated", 0) == 0:
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)


@main.command()
@click.option("--style", type=click.Choice(["conventional", "simple"]), help="Override the configured commit style.")
@click.option("--repo", type=click.Path(file_okay=False), help="Repository root (default: current directory).")
@click.option("--json", "as_json", is_flag=True, help="Print the result envelope as JSON.")
@ai_options
@click.pass_context
def analyze(
    ctx: click.Context,
    style: Optional[str],
    repo: Optional[str],
    as_json: bool,
    ai: bool,
    ollama_url: str,
    ollama_port: int,
    model: Optional[str],
) -> None:
    """Show the commits that would be created, without committing."""
    orchestrator = _build_orchestrator(ctx, ai, ollama_url, ollama_port, model, repo)
    result = orchestrator.analyze_changes(commit_style=style)
    if not result.success:
        _finish(result, as_json)
    data = result.data or {}
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif not data.get("commitUnits"):
        print_warning("No changes to commit")
    else:
        print_units(data["commitUnits"])
        click.echo("")
        print_info(result.message)
    if not data.get("commitUnits"):
        raise click.exceptions.Exit(EXIT_NO_CHANGES)


@main.command()
@click.option("--repo", type=click.Path(file_okay=False), help="Repository root (default: current directory).")
@click.option("--json", "as_json", is_flag=True, help="Print the result envelope as JSON.")
@click.pass_context
def status(ctx: click.Context, repo: Optional[str], as_json: bool) -> None:
    """Show the branch and pending files of the repository."""
    result = _build_orchestrator(ctx, repo=repo).get_status()
    if not result.success:
        _finish(result, as_json)
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    context = result.data["status"]
    print_info(f"Branch: {click.style(context['currentBranch'], fg='cyan', bold=True)}")
    for label, key in (("Staged", "stagedFiles"), ("Unstaged", "unstagedFiles"), ("Untracked", "untrackedFiles")):
        files = context[key]
        print_info(f"{label}: {len(files)} file(s)")
        for file in files:
            click.echo(f"     {file}")


@main.group()
def config() -> None:
    """Inspect or change the commit configuration."""


@config.command("show")
@click.option("--repo", type=click.Path(file_okay=False), help="Repository root (default: current directory).")
@click.pass_context
def config_show(ctx: click.Context, repo: Optional[str]) -> None:
    """Print the effective configuration as JSON."""
    resolved = _build_orchestrator(ctx, repo=repo).get_config()
    click.echo(json.dumps(resolved.to_dict(), indent=2))


@config.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
@click.option("--global", "is_global", is_flag=True, help="Write the global file instead of the repository one.")
@click.option("--repo", type=click.Path(file_okay=False), help="Repository root (default: current directory).")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str, is_global: bool, repo: Optional[str]) -> None:
    """Set KEY to VALUE and save it."""
    coerced = _coerce(key, value)
    orchestrator = _build_orchestrator(ctx, repo=repo)
    if is_global:
        result = orchestrator.save_global_config({key: coerced})
    else:
        result = orchestrator.save_repo_config({key: coerced})
    if not result.success:
        _finish(result, False)
    print_success(f"{key} = {json.dumps(coerced)}")


if __name__ == "__main__":  # pragma: no cover
    main(prog_name="smartcommit")
