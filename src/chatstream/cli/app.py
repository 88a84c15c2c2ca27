"""Main CLI application using Typer."""
import asyncio
import logging
import os

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from ..exceptions import BackendError
from ..llm import ChatBackend, ConversationHistory, Role
from ..session import StreamingSessionCoordinator
from .observer import SEPARATOR, ConsoleObserver, print_last_message
from .providers import PROVIDER_TITLES, configured_providers, require_backend

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="chatstream",
    help="Stream chat completions from OpenAI, Azure OpenAI and Anthropic",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

DEFAULT_INSTRUCTIONS = "You are a librarian, expert about books"

DEMO_USER_MESSAGES = (
    "Hi, I'm looking for book suggestions",
    "I love history and philosophy, I'd like to learn something new about Greece, any suggestion?",
)


def configure_logging(level: str | None = None) -> None:
    """Route library logging through Rich.

    Level comes from the argument, else CHATSTREAM_LOG_LEVEL, else WARNING.
    """
    level_name = (level or os.getenv("CHATSTREAM_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(
        level=level_name,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


async def run_librarian_demo(backend: ChatBackend, out: Console) -> ConversationHistory:
    """Run the two-question librarian conversation against one backend.

    Returns:
        The final conversation history
    """
    observer = ConsoleObserver(out)
    coordinator = StreamingSessionCoordinator(backend, observer)

    out.print("Chat content:")
    out.print(SEPARATOR)

    history = ConversationHistory.new_chat(DEFAULT_INSTRUCTIONS)
    print_last_message(out, history)

    for message in DEMO_USER_MESSAGES:
        history.add_user_message(message)
        print_last_message(out, history)

        await coordinator.stream_turn(history, Role.ASSISTANT)
        observer.end_turn()

    return history


@app.command()
def demo(
    provider: list[str] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Provider to run (repeatable). Default: every configured provider"
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Stream a short librarian conversation from each provider."""
    configure_logging(log_level)

    async def _demo():
        providers = provider or configured_providers()
        if not providers:
            console.print("[red]Error: no provider credentials found in environment[/red]")
            raise typer.Exit(code=1)

        for name in providers:
            title = PROVIDER_TITLES.get(name.lower(), name)
            console.print(f"======== {title} - Chat Streaming ========")

            backend = require_backend(name, console)
            async with backend:
                try:
                    await run_librarian_demo(backend, console)
                except BackendError as e:
                    console.print(f"\n[red]Error: {e}[/red]")
                    raise typer.Exit(code=1)

    asyncio.run(_demo())


@app.command()
def chat(
    provider: str = typer.Option(
        None,
        "--provider",
        "-p",
        help="Provider to chat with (default: CHATSTREAM_PROVIDER or openai)"
    ),
    system: str = typer.Option(
        DEFAULT_INSTRUCTIONS,
        "--system",
        "-s",
        help="System instructions for the assistant"
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Interactive streaming chat with a single provider."""
    configure_logging(log_level)

    async def _chat():
        name = provider or os.getenv("CHATSTREAM_PROVIDER", "openai")
        backend = require_backend(name, console)

        observer = ConsoleObserver(console)
        coordinator = StreamingSessionCoordinator(backend, observer)
        history = ConversationHistory.new_chat(system)

        console.print(f"[bold cyan]Chatstream[/bold cyan] [dim]({backend.provider_name}: {backend.model})[/dim]")
        console.print("[dim]Type 'exit', 'quit', or 'q' to leave\n[/dim]")

        async with backend:
            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if not user_input.strip():
                    continue

                if user_input.strip().lower() in ('exit', 'quit', 'q'):
                    console.print("[dim]Goodbye![/dim]")
                    break

                history.add_user_message(user_input)
                try:
                    await coordinator.stream_turn(history, Role.ASSISTANT)
                except BackendError as e:
                    console.print(f"\n[red]Error: {e}[/red]")
                    # Drop the unanswered question so the next one can follow it
                    history = ConversationHistory(list(history.turns[:-1]))
                    continue
                finally:
                    observer.end_turn()

    asyncio.run(_chat())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
