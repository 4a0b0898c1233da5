"""Typer CLI for cclens — browse, search and summarize conversation logs."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import BaseModel
from result import Err, Result

from cclens.config import Config
from cclens.models.errors import ServiceError
from cclens.services.container import ServiceContainer

app = typer.Typer(
    name="cclens",
    help="Search and summarize AI assistant conversation logs.",
    no_args_is_help=True,
)

ClaudeDirOption = Annotated[
    Path | None,
    typer.Option("--claude-dir", help="Path to Claude data directory"),
]
CacheDirOption = Annotated[
    Path | None,
    typer.Option("--cache-dir", help="Directory for the stats snapshot database"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Print results as JSON")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Search and summarize AI assistant conversation logs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def projects(
    claude_dir: ClaudeDirOption = None,
    cache_dir: CacheDirOption = None,
    as_json: JsonOption = False,
) -> None:
    """List projects, most recently modified first."""
    config = _make_config(claude_dir, cache_dir)
    found = _run(config, lambda container: container.project_service.list_projects())
    if as_json:
        _echo_json([project.model_dump(mode="json") for project in found])
        return
    if not found:
        typer.echo("No projects found.")
        return
    for project in found:
        typer.echo(
            f"{project.project_id}\t{project.name}\t"
            f"{project.conversation_count} conversations"
        )


@app.command()
def conversations(
    project_id: Annotated[str, typer.Argument(help="Project directory name")],
    claude_dir: ClaudeDirOption = None,
    cache_dir: CacheDirOption = None,
    as_json: JsonOption = False,
) -> None:
    """List the conversations of a project, newest first."""
    config = _make_config(claude_dir, cache_dir)
    records = _run(
        config, lambda container: container.conversation_service.list_conversations(project_id)
    )
    if as_json:
        _echo_json([record.model_dump(mode="json", exclude={"messages"}) for record in records])
        return
    for record in records:
        typer.echo(
            f"{record.id}\t{record.last_updated:%Y-%m-%d %H:%M}\t"
            f"{record.message_count} msgs\t{record.summary.text}"
        )


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Text to search for")],
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Limit search to one project")
    ] = None,
    mode: Annotated[
        str, typer.Option("--mode", "-m", help="Match mode: exact or partial")
    ] = "exact",
    claude_dir: ClaudeDirOption = None,
    cache_dir: CacheDirOption = None,
    as_json: JsonOption = False,
) -> None:
    """Search conversation text."""
    config = _make_config(claude_dir, cache_dir)
    results = _run(config, lambda container: container.search_service.search(query, mode, project))
    if as_json:
        _echo_model(results)
        return

    typer.echo(
        f"{results.total_matches} matches in {results.total_conversations} conversations"
        + (f" (showing {len(results.results)})" if results.truncated else "")
    )
    for hit in results.results:
        typer.echo(f"\n{hit.project_name} / {hit.conversation_id}  [{hit.match_count}]")
        typer.echo(f"  {hit.summary}")
        for match in hit.matches:
            typer.echo(f"    {match.role}: {match.preview}")


@app.command()
def stats(
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Stats for one project")
    ] = None,
    conversation: Annotated[
        str | None, typer.Option("--conversation", "-c", help="Stats for one conversation")
    ] = None,
    claude_dir: ClaudeDirOption = None,
    cache_dir: CacheDirOption = None,
    as_json: JsonOption = False,
) -> None:
    """Show usage statistics for all projects, one project or one conversation.

    With both options the conversation is looked up inside that project only.
    """
    config = _make_config(claude_dir, cache_dir)

    def fetch(container: ServiceContainer) -> Awaitable[Result[Any, ServiceError]]:
        if conversation is not None:
            return container.stats_service.get_conversation_stats(conversation, project)
        if project is not None:
            return container.stats_service.get_project_stats(project)
        return container.stats_service.get_global_stats()

    summary = _run(config, fetch)
    if as_json:
        _echo_model(summary)
        return
    for key, value in summary.model_dump(mode="json").items():
        if isinstance(value, (dict, list)):
            continue
        typer.echo(f"{key}: {value}")


def _make_config(claude_dir: Path | None, cache_dir: Path | None) -> Config:
    defaults = Config()
    return Config(
        claude_dir=claude_dir or defaults.claude_dir,
        cache_dir=cache_dir or defaults.cache_dir,
    )


def _run[T](
    config: Config,
    call: Callable[[ServiceContainer], Awaitable[Result[T, ServiceError]]],
) -> T:
    """Run one service call inside a fresh container and unwrap its result."""
    outcome = asyncio.run(_call_service(config, call))
    if isinstance(outcome, Err):
        typer.echo(f"Error: {outcome.err_value}", err=True)
        raise typer.Exit(code=1)
    return outcome.ok_value


async def _call_service[T](
    config: Config,
    call: Callable[[ServiceContainer], Awaitable[Result[T, ServiceError]]],
) -> Result[T, ServiceError]:
    container = await ServiceContainer.create(config)
    try:
        return await call(container)
    finally:
        await container.close()


def _echo_model(model: BaseModel) -> None:
    typer.echo(model.model_dump_json(indent=2))


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))
