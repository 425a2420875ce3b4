"""
CLI interface for Rental Assistant.

Interactive chat plus the setup, health, config validation and benchmark
commands.
"""

import asyncio
import sys
import time
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rental_assistant.catalog.loader import DEFAULT_DATA_PATH, Catalog, CatalogError, load_catalog
from rental_assistant.cli.animation import ThinkingAnimation
from rental_assistant.config.loader import (
    API_KEY_PLACEHOLDER,
    AssistantConfig,
    ConfigurationError,
    load_config,
)
from rental_assistant.core.cost_tracker import SessionSummary
from rental_assistant.core.orchestrator import AnswerResult, SessionOrchestrator
from rental_assistant.sdk.openai_client import CompletionClient

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

EXIT_COMMANDS = {"exit", "quit", "bye", "goodbye"}
HELP_COMMANDS = {"help", "?"}

BENCHMARK_QUESTIONS = [
    "What properties do you have under $50/night?",
    "Show me properties in Brazil",
    "I need a property with at least 2 bedrooms",
]

RULE = "━" * 50

ENV_TEMPLATE = DEFAULT_DATA_PATH.with_name("env.example")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file with configuration overrides"
    ),
):
    """Rental Assistant - ask questions about rental properties."""
    ctx.obj = {"config_file": config_file}
    if ctx.invoked_subcommand is None:
        chat(ctx, skip_check=False)


def _load_settings(ctx: typer.Context) -> AssistantConfig:
    """Load .env and build the validated configuration."""
    load_dotenv()
    config_file = (ctx.obj or {}).get("config_file")
    config = load_config(config_file=config_file)
    config.setup_logging()
    return config


def _startup(ctx: typer.Context) -> Tuple[AssistantConfig, Catalog]:
    """Load configuration and catalog, exiting on failure."""
    try:
        config = _load_settings(ctx)
        catalog = load_catalog(config.data_path)
    except (ConfigurationError, CatalogError) as e:
        console.print(f"[red bold]❌ Initialization failed:[/] {escape(str(e))}")
        _display_troubleshooting()
        sys.exit(EXIT_CODE_FAIL)
    return config, catalog


def _create_session(
    config: AssistantConfig,
    catalog: Catalog,
    animate: bool = True,
) -> Tuple[SessionOrchestrator, CompletionClient]:
    client = CompletionClient(
        api_key=config.openai_api_key,
        model=config.openai_model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.timeout_seconds,
    )
    indicator = None
    if animate and config.enable_animations:
        indicator = ThinkingAnimation(console, config.animation_style)
    return SessionOrchestrator(config, catalog, client, indicator), client


@app.command()
def chat(
    ctx: typer.Context,
    skip_check: bool = typer.Option(
        False,
        "--skip-check",
        help="Skip the OpenAI connection check at startup"
    ),
):
    """Start an interactive question/answer session."""
    config, catalog = _startup(ctx)
    orchestrator, client = _create_session(config, catalog)

    loop = asyncio.new_event_loop()
    try:
        exit_code = _chat_session(loop, orchestrator, client, skip_check)
    finally:
        _shutdown(loop, client)
    sys.exit(exit_code)


def _chat_session(
    loop: asyncio.AbstractEventLoop,
    orchestrator: SessionOrchestrator,
    client: CompletionClient,
    skip_check: bool,
) -> int:
    if not skip_check and not loop.run_until_complete(_check_connection(client)):
        console.print("[red bold]❌ Failed to connect to OpenAI.[/] Please check your API key.")
        return EXIT_CODE_FAIL

    _display_welcome(orchestrator)

    while True:
        try:
            line = console.input("[blue]🤔 Ask me anything: [/]")
        except (EOFError, KeyboardInterrupt):
            break

        question = line.strip()
        if not question:
            continue
        if question.lower() in EXIT_COMMANDS:
            break
        if question.lower() in HELP_COMMANDS:
            _display_help(orchestrator)
            continue

        try:
            result = loop.run_until_complete(orchestrator.answer(question))
        except KeyboardInterrupt:
            _cancel_pending(loop)
            break
        _display_answer(result, orchestrator.config)

    _display_farewell(orchestrator)
    return EXIT_CODE_PASS


def _cancel_pending(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel an interrupted question and let it unwind."""
    pending = asyncio.all_tasks(loop)
    while pending:
        for task in pending:
            task.cancel()
        try:
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        except KeyboardInterrupt:
            # wait_for re-raises the interrupt stored on its inner task
            pass
        pending = asyncio.all_tasks(loop)


def _shutdown(loop: asyncio.AbstractEventLoop, client: CompletionClient) -> None:
    _cancel_pending(loop)
    loop.run_until_complete(client.close())
    loop.close()


@app.command()
def ask(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Question to ask about the properties"),
):
    """Answer a single question and exit."""
    question = question.strip()
    if not question:
        console.print("[red]Error:[/] question cannot be empty")
        sys.exit(EXIT_CODE_FAIL)

    config, catalog = _startup(ctx)
    orchestrator, client = _create_session(config, catalog)

    result = asyncio.run(_ask_once(orchestrator, client, question))
    _display_answer(result, config)
    sys.exit(EXIT_CODE_PASS if result.ok else EXIT_CODE_FAIL)


async def _ask_once(
    orchestrator: SessionOrchestrator,
    client: CompletionClient,
    question: str,
) -> AnswerResult:
    try:
        return await orchestrator.answer(question)
    finally:
        await client.close()


async def _check_connection(client: CompletionClient) -> bool:
    console.print("[yellow]🔑 Validating OpenAI connection...[/]")
    return await client.validate_connection()


@app.command()
def health(ctx: typer.Context):
    """Check configuration, catalog loading and OpenAI connectivity."""
    passed = 0
    failed = 0

    console.print("[bold blue]🏥 Rental Assistant Health Check[/]")
    console.print(f"[dim]{RULE}[/]")

    try:
        config = _load_settings(ctx)
        console.print(f"[green]✅ Configuration:[/] model {config.openai_model}")
        passed += 1
    except ConfigurationError as e:
        console.print(f"[red]❌ Configuration:[/] {escape(str(e))}")
        console.print(f"\n[red]Passed: {passed} | Failed: {failed + 1}[/]")
        sys.exit(EXIT_CODE_FAIL)

    try:
        started = time.perf_counter()
        catalog = load_catalog(config.data_path)
        load_ms = int((time.perf_counter() - started) * 1000)
        console.print(
            f"[green]✅ Data loading:[/] {len(catalog)} properties in {load_ms}ms"
        )
        passed += 1
    except CatalogError as e:
        console.print(f"[red]❌ Data loading:[/] {escape(str(e))}")
        failed += 1

    client = CompletionClient(
        api_key=config.openai_api_key,
        model=config.openai_model,
        timeout=config.timeout_seconds,
    )
    if asyncio.run(_probe(client)):
        console.print("[green]✅ OpenAI API:[/] connected")
        passed += 1
    else:
        console.print("[red]❌ OpenAI API:[/] connection failed")
        failed += 1

    console.print(f"[dim]{RULE}[/]")
    style = "green" if failed == 0 else "red"
    console.print(f"[{style}]Passed: {passed} | Failed: {failed}[/]")
    sys.exit(EXIT_CODE_PASS if failed == 0 else EXIT_CODE_FAIL)


async def _probe(client: CompletionClient) -> bool:
    try:
        return await client.validate_connection()
    finally:
        await client.close()


@app.command(name="validate-config")
def validate_config(ctx: typer.Context):
    """Validate the configuration and the property data file."""
    try:
        config = _load_settings(ctx)
    except ConfigurationError as e:
        console.print(f"[red]❌ {escape(str(e))}[/]")
        console.print("\n[red]🚨 Please fix errors before running the assistant[/]")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title="Effective configuration")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("openai_api_key", config.masked_api_key)
    for name in (
        "openai_model", "temperature", "max_tokens", "data_path", "response_timeout",
        "debug_mode", "enable_cost_tracking", "cache_system_prompt",
        "enable_animations", "animation_style", "welcome_message",
        "show_performance_metrics",
    ):
        table.add_row(name, str(getattr(config, name)))
    console.print(table)

    try:
        catalog = load_catalog(config.data_path)
    except CatalogError as e:
        console.print(f"[red]❌ {escape(str(e))}[/]")
        sys.exit(EXIT_CODE_FAIL)

    incomplete = [p for p in catalog if not p.is_complete]
    for record in incomplete:
        console.print(f"[yellow]⚠️ Property {record.index} ({record.title}) has missing fields[/]")

    console.print(
        f"[green]✅ {len(catalog)} properties loaded[/] "
        f"[dim]({len(incomplete)} warnings)[/]"
    )
    sys.exit(EXIT_CODE_PASS)


@app.command()
def setup(
    env_file: Path = typer.Option(
        Path(".env"),
        "--env-file",
        help="Where to write the environment file"
    ),
):
    """Create a .env file from the template and store the OpenAI API key."""
    console.print("[bold blue]🏠 Rental Assistant Setup[/]")
    console.print(f"[dim]{RULE}[/]")

    if env_file.exists():
        console.print(f"[green]✅ {escape(str(env_file))} already exists[/] [dim](left unchanged)[/]")
    else:
        content = ENV_TEMPLATE.read_text(encoding="utf-8")
        console.print("\n[cyan]🔑 OpenAI API Key Required[/]")
        console.print("[dim]Get one at: https://platform.openai.com/api-keys[/]")
        api_key = typer.prompt(
            "Enter your OpenAI API key",
            default="",
            show_default=False,
            hide_input=True,
        ).strip()
        if api_key:
            content = content.replace(API_KEY_PLACEHOLDER, api_key)
        env_file.write_text(content, encoding="utf-8")
        console.print(f"[green]✅ Created {escape(str(env_file))} from template[/]")
        if api_key:
            console.print("[green]✅ API key saved[/]")
        else:
            console.print(
                f"[yellow]⚠️ No API key provided. You can add it later to {escape(str(env_file))}.[/]"
            )

    console.print(f"\n[dim]{RULE}[/]")
    console.print("[green bold]🎉 Setup Complete![/]")
    console.print("\nNext steps:")
    console.print("[cyan]   rental-assistant validate-config[/]")
    console.print("[cyan]   rental-assistant chat[/]")


@app.command()
def benchmark(
    ctx: typer.Context,
    iterations: int = typer.Option(
        1,
        "--iterations",
        "-n",
        min=1,
        help="Rounds of sample questions to run"
    ),
):
    """Measure data loading time and answer latency and cost."""
    config, _ = _startup(ctx)

    load_times = []
    for _ in range(5):
        started = time.perf_counter()
        catalog = load_catalog(config.data_path)
        load_times.append((time.perf_counter() - started) * 1000)

    orchestrator, client = _create_session(config, catalog, animate=False)
    console.print(
        f"[yellow]🤖 Benchmarking AI responses "
        f"({iterations} x {len(BENCHMARK_QUESTIONS)} questions)...[/]"
    )
    results = asyncio.run(_run_benchmark(orchestrator, client, iterations))

    _display_benchmark(load_times, results, orchestrator.close())
    failures = sum(1 for r in results if not r.ok)
    sys.exit(EXIT_CODE_PASS if failures == 0 else EXIT_CODE_FAIL)


async def _run_benchmark(
    orchestrator: SessionOrchestrator,
    client: CompletionClient,
    iterations: int,
) -> List[AnswerResult]:
    results = []
    try:
        for _ in range(iterations):
            for question in BENCHMARK_QUESTIONS:
                results.append(await orchestrator.answer(question))
    finally:
        await client.close()
    return results


def _format_currency(amount: Decimal) -> str:
    """Format a cost with six decimal places."""
    return f"${amount:,.6f}"


def _display_troubleshooting():
    console.print("\n[yellow]💡 Troubleshooting tips:[/]")
    console.print("[dim]   1. Run \"rental-assistant setup\" to create a .env file[/]")
    console.print("[dim]   2. Add your OpenAI API key to the .env file[/]")
    console.print("[dim]   3. Ensure the properties JSON file exists and is valid[/]")
    console.print("[dim]   4. Check your internet connection for OpenAI API[/]")


def _display_welcome(orchestrator: SessionOrchestrator):
    config = orchestrator.config
    if config.welcome_message == "custom":
        console.print("\n[blue bold]🏠 Welcome to Your Personal Property Assistant![/]")
        console.print(f"[dim]{RULE}[/]")
        console.print(
            "Hi there! I'm here to help you discover rental properties from our "
            f"collection of {len(orchestrator.catalog)} destinations."
        )
        console.print("[yellow]💡 Pro tip: Be specific about what you're looking for![/]\n")
    else:
        console.print("\n[blue bold]🏠 Welcome to the Rental Property Chatbot![/]")
        console.print(f"[dim]{RULE}[/]")
        console.print("I can help you find the perfect rental property from our curated selection.")
        console.print("Ask me about locations, prices, facilities, or specific preferences!\n")

    suggestions = orchestrator.prompts.suggested_questions()
    if suggestions:
        console.print("[cyan]💡 Try asking questions like:[/]")
        for index, question in enumerate(suggestions[:5], start=1):
            console.print(f"[dim]   {index}. {question}[/]")
        console.print()

    stats = orchestrator.catalog.stats()
    if stats:
        console.print(
            f"[yellow]📊 Available Properties: {stats.total_properties} | "
            f"Price Range: ${stats.min_price:,.0f}-${stats.max_price:,.0f}/night | "
            f"Countries: {len(stats.countries)}[/]"
        )
        console.print(f"[dim]📂 Data Source: {stats.data_source}[/]")

    console.print(f"[dim]{RULE}[/]")
    console.print('[green]Type your question and press Enter. Type "exit" to quit.[/]\n')


def _display_help(orchestrator: SessionOrchestrator):
    console.print("\n[cyan]💡 Here are some things you can ask:[/]")
    for question in orchestrator.prompts.suggested_questions()[:8]:
        console.print(f"[dim]   • {question}[/]")
    console.print()


def _display_answer(result: AnswerResult, config: AssistantConfig):
    console.print("\n[green]📝 Answer:[/]")
    console.print(result.answer, markup=False)

    if result.error and config.debug_mode:
        console.print(f"[dim]Error: {escape(result.error)}[/]")

    if result.cost is not None and config.show_performance_metrics:
        cost = result.cost
        tokens = f"Tokens: {cost.total_tokens:,} ({cost.input_tokens}+{cost.output_tokens})"
        if cost.estimated:
            tokens += " estimated"
        console.print(
            f"[dim]💰 Query cost: {_format_currency(cost.total_cost)} | {tokens} | "
            f"Time: {result.response_time_ms}ms[/]"
        )
    console.print()


def _display_farewell(orchestrator: SessionOrchestrator):
    console.print("\n[green]👋 Thank you for using the Rental Property Chatbot![/]")
    console.print(f"[cyan]📊 Session Stats: {orchestrator.question_count} questions answered[/]")

    summary = orchestrator.close()
    if summary is not None:
        _display_session_summary(summary)
    console.print("[blue]🏠 Goodbye! Happy property hunting![/]")


def _display_session_summary(summary: SessionSummary):
    console.print("\n[cyan]💰 Session Cost Summary[/]")
    console.print(f"[dim]{'━' * 40}[/]")
    console.print(f"Total Queries: {summary.total_queries}")
    console.print(f"Total Tokens: {summary.total_tokens:,}")
    console.print(f"[dim]  • Input: {summary.input_tokens:,}[/]")
    console.print(f"[dim]  • Output: {summary.output_tokens:,}[/]")
    console.print(f"[green]Total Cost: {_format_currency(summary.total_cost)}[/]")

    if summary.total_queries > 0:
        console.print(f"[yellow]Average per query: {_format_currency(summary.average_cost_per_query)}[/]")
        console.print(f"[yellow]Average tokens: {round(summary.average_tokens_per_query):,}[/]")
    console.print(f"[dim]{'━' * 40}[/]")

    if summary.total_cost > Decimal("0.01"):
        console.print("[red]💡 Tip: Consider using shorter prompts to reduce costs[/]")
    elif summary.total_cost > Decimal("0.001"):
        console.print("[yellow]💡 Good: Reasonable cost for this session[/]")
    else:
        console.print("[green]💡 Excellent: Very cost-effective session![/]")


def _display_benchmark(
    load_times: List[float],
    results: List[AnswerResult],
    summary: Optional[SessionSummary],
):
    table = Table(title="Benchmark Results")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    table.add_row("Data loading (avg)", f"{sum(load_times) / len(load_times):.1f}ms")
    table.add_row("Data loading (max)", f"{max(load_times):.1f}ms")

    times = [r.response_time_ms for r in results]
    if times:
        table.add_row("Queries", str(len(results)))
        table.add_row("Failures", str(sum(1 for r in results if not r.ok)))
        table.add_row("Response time (avg)", f"{round(sum(times) / len(times)):,}ms")
        table.add_row("Response time (min)", f"{min(times):,}ms")
        table.add_row("Response time (max)", f"{max(times):,}ms")
    if summary is not None and summary.total_queries:
        table.add_row("Average tokens", f"{round(summary.average_tokens_per_query):,}")
        table.add_row("Total cost", _format_currency(summary.total_cost))
        table.add_row("Average cost/query", _format_currency(summary.average_cost_per_query))

    console.print(table)


if __name__ == "__main__":
    app()
