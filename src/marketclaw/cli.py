"""CLI entry point for marketclaw."""

from __future__ import annotations

import asyncio
import json
import logging
import os

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from marketclaw.config import MarketClawConfig

app = typer.Typer(
    name="marketclaw",
    help="Marketing sub-agents: delegate work to specialist AI personas.",
    no_args_is_help=True,
)

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_registry(config: MarketClawConfig):
    """Provider, tools and registry wired together with agents loaded."""
    from marketclaw.agent.loader import initialize_agents
    from marketclaw.agent.registry import SubAgentRegistry
    from marketclaw.agent.tools import create_agent_tools
    from marketclaw.llm.provider import ProviderRegistry, create_provider
    from marketclaw.tool.registry import ToolRegistry

    providers = ProviderRegistry()
    providers.register(
        "default",
        create_provider(
            model=config.llm.model,
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        ),
    )

    tool_registry = ToolRegistry()
    registry = SubAgentRegistry(providers, tool_registry)

    agents_dir = config.agents.custom_dir or "~/.marketclaw/agents"
    # Sub-agents never delegate: tasks run one at a time, so waiting on
    # another task from inside a task would never finish.
    tool_registry.register_many(
        [
            tool
            for tool in create_agent_tools(registry, os.path.expanduser(agents_dir))
            if tool.name != "delegate_task"
        ]
    )

    initialize_agents(registry, config.agents)
    return registry


@app.command()
def agents(
    show_all: bool = typer.Option(
        False, "--all", "-a", help="Include disabled agents."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path (YAML or JSON)."
    ),
) -> None:
    """List the configured sub-agents."""
    setup_logging(verbose)
    config = MarketClawConfig.load(config_file)
    registry = _build_registry(config)

    states = registry.list() if show_all else registry.list_enabled()
    if not states:
        typer.echo("No sub-agents configured.")
        return

    table = Table(title="Sub-agents")
    table.add_column("ID", style="cyan")
    table.add_column("Agent")
    table.add_column("Specialty")
    table.add_column("Voice")
    table.add_column("Model")
    table.add_column("Enabled")
    for state in states:
        c = state.config
        table.add_row(
            c.specialty.id,
            f"{c.identity.emoji} {c.identity.name}",
            c.specialty.display_name,
            c.identity.voice.value if c.identity.voice else "friendly",
            c.model or "default",
            "yes" if c.enabled else "no",
        )
    console.print(table)


@app.command()
def delegate(
    agent: str = typer.Argument(help="Agent ID (e.g. 'twitter', 'researcher')."),
    prompt: str = typer.Argument(help="What the agent should do."),
    context: str | None = typer.Option(
        None, "--context", help="Extra task context as a JSON object."
    ),
    model: str | None = typer.Option(
        None, "--model", "-m", help="Model override for this agent (litellm format)."
    ),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", help="Task timeout in milliseconds."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path (YAML or JSON)."
    ),
) -> None:
    """Delegate one task to a sub-agent and print the result."""
    setup_logging(verbose)

    task_context = None
    if context:
        try:
            task_context = json.loads(context)
        except json.JSONDecodeError as e:
            typer.echo(f"Error: Invalid --context JSON: {e}", err=True)
            raise typer.Exit(1)
        if not isinstance(task_context, dict):
            typer.echo("Error: --context must be a JSON object", err=True)
            raise typer.Exit(1)

    config = MarketClawConfig.load(config_file)
    ok = asyncio.run(_run_delegate(config, agent, prompt, task_context, model, timeout))
    if not ok:
        raise typer.Exit(1)


async def _run_delegate(
    config: MarketClawConfig,
    agent_id: str,
    prompt: str,
    context: dict | None,
    model: str | None,
    timeout_ms: int | None,
) -> bool:
    from marketclaw.agent.errors import SubAgentError
    from marketclaw.agent.types import SpawnOptions, TaskStatus
    from marketclaw.session.wire import EventType

    registry = _build_registry(config)

    if model:
        registry.set_model(agent_id, model)
    if timeout_ms:
        registry.update_config(agent_id, task_timeout_ms=timeout_ms)

    def _on_start(event) -> None:
        state = registry.get(event.task.agent_id)
        if state:
            identity = state.config.identity
            console.print(f"{identity.emoji} {identity.name} is working on it...")

    registry.wire.add_listener(EventType.TASK_START, _on_start)

    async with registry:
        try:
            task = registry.spawn(agent_id, prompt, SpawnOptions(context=context))
        except SubAgentError as e:
            typer.echo(f"Error: {e}", err=True)
            return False

        wait_ms = registry.get(agent_id).config.task_timeout_ms + 5_000
        try:
            done = await registry.wait_for_task(task.id, wait_ms)
        except SubAgentError as e:
            typer.echo(f"Error: {e}", err=True)
            return False

    if done.status is TaskStatus.COMPLETED:
        console.print(Panel(Markdown(done.result or ""), title=f"{agent_id} · {done.id}"))
        return True

    typer.echo(f"Task failed: {done.error}", err=True)
    return False


def main() -> None:
    app()


if __name__ == "__main__":
    main()
