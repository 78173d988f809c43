"""CLI entry point for projectmemory."""

from __future__ import annotations

import json
from pathlib import Path

import anthropic
import typer
from rich import print as rprint

from projectmemory.activity import read_activity_log
from projectmemory.config import Config
from projectmemory.context.formatter import format_context_for_prompt
from projectmemory.context.loader import ContextLoader, LoadResult, MissingProjectStateError
from projectmemory.extraction.attempts import parse_attempts
from projectmemory.extraction.models import Attempt
from projectmemory.query.engine import AssistantEngine
from projectmemory.storage.files import ProjectFiles
from projectmemory.tracking.attempts import AttemptTracker

app = typer.Typer(help="Project memory and attempt tracking for AI coding assistants.")

PROJECT_DIR_OPTION = typer.Option(Path("."), "--project-dir", "-p", help="Project root directory")


def _config() -> Config:
    config = Config.load()
    issues = config.validate()
    if issues:
        for issue in issues:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)
    return config


def _load(project_dir: Path, config: Config) -> LoadResult:
    try:
        return ContextLoader(config).load_project(ProjectFiles(project_dir, config))
    except MissingProjectStateError as e:
        rprint(f"[red]No project context loaded: {e}[/red]")
        raise typer.Exit(1)


def _history(project_dir: Path, config: Config) -> list[Attempt]:
    """All recorded attempts, not just the recent window kept in the context."""
    return parse_attempts(ProjectFiles(project_dir, config).read_attempts())


@app.command()
def init(
    project_name: str = typer.Option(None, "--name", help="Project name (defaults to the directory name)"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Create the memory directory, empty memory files and a project state file."""
    config = _config()
    files = ProjectFiles(project_dir, config)
    name = project_name or project_dir.resolve().name

    created = files.init_memory_dir(name)
    if not created:
        rprint("[yellow]Memory files already exist, nothing to do.[/yellow]")
        return

    for path in created:
        rprint(f"Created {path}")
    rprint(f"\n[green bold]projectmemory initialized for {name}[/green bold]")


@app.command()
def context(
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Print the project context as it is injected into prompts."""
    config = _config()
    loaded = _load(project_dir, config)

    if format == "json":
        typer.echo(json.dumps(
            {"context": loaded.context.to_dict(), "warnings": loaded.warnings},
            indent=2,
        ))
        return

    typer.echo(format_context_for_prompt(loaded.context))
    for warning in loaded.warnings:
        rprint(f"[yellow]Warning: {warning}[/yellow]")


@app.command()
def check(
    issue: str = typer.Argument(help="The problem being solved"),
    approach: str = typer.Argument(help="The approach you plan to try"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Check whether an approach was already tried for an issue."""
    config = _config()
    tracker = AttemptTracker.from_config(config)
    attempts = _history(project_dir, config)

    result = tracker.has_been_tried(issue, approach, attempts)
    if result.already_tried and result.previous_attempt and result.previous_attempt.result == "failure":
        rprint(f"[red bold]Already tried and failed.[/red bold] {result.recommendation}")
        for suggestion in tracker.suggest_alternatives(issue, attempts):
            rprint(f"  - {suggestion}")
        raise typer.Exit(2)

    if result.already_tried:
        rprint(f"[green bold]Known good approach.[/green bold] {result.recommendation}")
    elif result.recommendation:
        rprint(f"[yellow]Not tried yet.[/yellow] {result.recommendation}")
    else:
        rprint("[green]Not tried yet. No earlier attempts for this issue.[/green]")


@app.command()
def failed(
    issue: str = typer.Argument(help="The problem being solved"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Show the approaches that already failed for an issue."""
    config = _config()
    rendered = AttemptTracker.from_config(config).format_for_prompt(issue, _history(project_dir, config))
    if not rendered:
        rprint(f"No failed attempts recorded for: {issue}")
        return
    typer.echo(rendered)


@app.command()
def suggest(
    issue: str = typer.Argument(help="The problem being solved"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Suggest untried directions based on how earlier attempts failed."""
    config = _config()
    suggestions = AttemptTracker.from_config(config).suggest_alternatives(
        issue, _history(project_dir, config)
    )
    if not suggestions:
        rprint("No suggestions: there are no failed attempts for this issue.")
        return
    for suggestion in suggestions:
        rprint(f"  - {suggestion}")


@app.command("log-attempt")
def log_attempt(
    issue: str = typer.Argument(help="The problem being solved"),
    approach: str = typer.Argument(help="What was tried"),
    result: str = typer.Option(..., "--result", "-r", help="success, failure or partial"),
    command: str = typer.Option("", "--command", "-c", help="The code or command that was run"),
    error: str = typer.Option(None, "--error", "-e", help="Error message, if it failed"),
    lesson: str = typer.Option(None, "--lesson", "-l", help="What was learned"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Record an attempt in ATTEMPTS.md."""
    config = _config()
    tracker = AttemptTracker.from_config(config)
    try:
        attempt = tracker.create_attempt(issue, approach, command, result, error, lesson)
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    path = ProjectFiles(project_dir, config).append_attempts([attempt])
    rprint(f"Logged attempt [bold]{attempt.id}[/bold] ({attempt.result}) to {path}")
    if attempt.should_not_retry:
        rprint("[yellow]Marked as do-not-retry.[/yellow]")


@app.command()
def stats(project_dir: Path = PROJECT_DIR_OPTION) -> None:
    """Show counts of decisions, attempts and blockers."""
    config = _config()
    loaded = _load(project_dir, config)
    ctx = loaded.context
    history = _history(project_dir, config)

    rprint(f"[bold]{ctx.project_name} ({ctx.project_type}, {ctx.current_phase})[/bold]")
    rprint(f"  Decisions:        {len(ctx.decisions)}")
    rprint(f"  Attempts:         {len(history)}")
    rprint(f"    failed:         {sum(1 for a in history if a.result == 'failure')}")
    rprint(f"    do not retry:   {sum(1 for a in history if a.should_not_retry)}")
    rprint(f"  Active blockers:  {len(ctx.blockers)}")
    rprint(f"  Recent changes:   {len(ctx.recent_changes)}")
    for warning in loaded.warnings:
        rprint(f"[yellow]Warning: {warning}[/yellow]")


@app.command()
def ask(
    question: str = typer.Argument(help="Question for the assistant"),
    issue: str = typer.Option(None, "--issue", "-i", help="Include failed attempts for this issue"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Ask Claude a question with the project context injected."""
    config = _config()
    if not config.anthropic_api_key:
        rprint("[red]ANTHROPIC_API_KEY not set[/red]")
        raise typer.Exit(1)

    loaded = _load(project_dir, config)
    engine = AssistantEngine(
        anthropic.Anthropic(api_key=config.anthropic_api_key),
        model=config.model,
        tracker=AttemptTracker.from_config(config),
    )
    result = engine.ask(
        question,
        loaded.context,
        issue=issue,
        attempts=_history(project_dir, config) if issue else None,
    )

    if format == "json":
        typer.echo(result.to_json())
    else:
        rprint(result.answer)


@app.command()
def activity(
    session: str = typer.Option(None, "--session", "-s", help="Only show calls from this session"),
    tool: str = typer.Option(None, "--tool", "-t", help="Only show calls to this MCP tool"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
    project_dir: Path = PROJECT_DIR_OPTION,
) -> None:
    """Show recent MCP tool calls made by your AI agent, newest first."""
    entries = read_activity_log(limit=limit, tool_name=tool, session_id=session, project_dir=project_dir)
    if not entries:
        rprint("No activity recorded yet. Activity is logged when AI agents call projectmemory MCP tools.")
        return

    for entry in entries:
        status = "[red]error[/red]" if entry.get("error") else "[green]ok[/green]"
        rprint(
            f"{entry.get('timestamp', '?')}  [bold]{entry.get('tool_name')}[/bold]  "
            f"{status}  {entry.get('duration_ms', 0)}ms  session={entry.get('session_id') or '-'}"
        )
        if entry.get("error"):
            rprint(f"  [red]{entry['error']}[/red]")


@app.command()
def serve(
    project_dir: Path = typer.Option(
        None, "--project-dir", "-p", help="Project root directory (defaults to PROJECTMEMORY_PROJECT_DIR or .)"
    ),
) -> None:
    """Start the MCP server (called by Claude Code / Cursor automatically)."""
    import asyncio
    from projectmemory.mcp_server import main as mcp_main
    asyncio.run(mcp_main(project_dir))


if __name__ == "__main__":
    app()
