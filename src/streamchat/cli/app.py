"""Main CLI application using Typer."""
import asyncio
import signal
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

import typer
from dotenv import load_dotenv
from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.text import Text

from ..auth import SessionAuthenticator
from ..client import BackendClient
from ..config import TransportKind
from ..conversation import ConversationEngine, ConversationSnapshot, MessageStatus, Role
from ..errors import AuthenticationError, StorageError
from .providers import configure_logging, get_config, get_credential_store, open_session

TurnStarter = Callable[[], Awaitable["asyncio.Task[None] | None"]]

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="streamchat",
    help="Chat with a streaming assistant backend from the terminal",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main_options(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        envvar="STREAMCHAT_LOG_LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
):
    """Configure logging for every command."""
    configure_logging(log_level, console)


def render_reply(snapshot: ConversationSnapshot) -> Group | Text:
    """Render the assistant message of the current turn."""
    message = snapshot.last
    if message is None or message.role is not Role.ASSISTANT:
        return Text("")

    if message.status is MessageStatus.STREAMING and not message.content:
        label = "thinking..." if snapshot.thinking else "waiting for reply..."
        return Text(label, style="dim")

    parts: list = [Markdown(message.content)]
    if message.status is MessageStatus.ERRORED and message.error and message.error != message.content:
        parts.append(Text(message.error, style="red"))
    elif message.stopped_by_user and message.content:
        parts.append(Text("(stopped)", style="dim"))
    return Group(*parts)


@contextmanager
def _cancel_on_interrupt(engine: ConversationEngine) -> Iterator[None]:
    """Make Ctrl+C cancel the running turn instead of exiting."""
    loop = asyncio.get_running_loop()
    # The loop only keeps weak references to tasks
    cancelling: set[asyncio.Task[None]] = set()

    def _interrupt() -> None:
        task = asyncio.ensure_future(engine.cancel())
        cancelling.add(task)
        task.add_done_callback(cancelling.discard)

    try:
        loop.add_signal_handler(signal.SIGINT, _interrupt)
        installed = True
    except NotImplementedError:
        # Signal handlers are unavailable on Windows event loops
        installed = False
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def _stream_turn(engine: ConversationEngine, start: TurnStarter) -> MessageStatus | None:
    """Start a turn and live-render the reply until it settles.

    Returns:
        Final status of the assistant message, or None if no turn started
    """
    with Live(Text(""), console=console, refresh_per_second=12) as live:
        unsubscribe = engine.subscribe(lambda snapshot: live.update(render_reply(snapshot)))
        try:
            with _cancel_on_interrupt(engine):
                task = await start()
                if task is None:
                    return None
                await asyncio.wait([task])
        finally:
            unsubscribe()
    return engine.messages[-1].status


@app.command()
def chat(
    transport: TransportKind | None = typer.Option(
        None,
        "--transport",
        "-t",
        help="How reply text is received"
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Abort a reply after this many seconds"
    ),
):
    """Interactive chat with the assistant. Ctrl+C stops a reply in progress."""
    async def _chat():
        config = get_config(transport=transport, request_timeout_seconds=timeout)
        async with open_session(config) as engine:
            console.print("[bold cyan]Streamchat[/bold cyan]")
            console.print("[dim]Type 'exit', 'quit', or 'q' to leave; '/retry' resends a failed message; "
                          "'/reset' starts a new session[/dim]\n")
            for message in engine.messages:
                console.print(Markdown(message.content))

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                command = user_input.strip().lower()
                if not command:
                    continue
                if command in ("exit", "quit", "q"):
                    console.print("[dim]Goodbye![/dim]")
                    break

                if command == "/reset":
                    try:
                        await engine.reset_session()
                    except AuthenticationError as e:
                        console.print(f"[red]{e}[/red]")
                        continue
                    console.print("[dim]Started a new session.[/dim]")
                    continue

                if command == "/retry":
                    status = await _stream_turn(engine, engine.retry)
                    if status is None:
                        console.print("[dim]Nothing to retry.[/dim]")
                    continue

                await _stream_turn(engine, lambda: engine.send_message(user_input))
                console.print()

    asyncio.run(_chat())


@app.command()
def ask(
    message: str = typer.Argument(..., help="Message to send"),
    transport: TransportKind | None = typer.Option(
        None,
        "--transport",
        "-t",
        help="How reply text is received"
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Abort the reply after this many seconds"
    ),
):
    """Send a single message and print the streamed reply."""
    async def _ask():
        config = get_config(transport=transport, request_timeout_seconds=timeout)
        async with open_session(config) as engine:
            status = await _stream_turn(engine, lambda: engine.send_message(message))
        if status is not MessageStatus.COMPLETE:
            raise typer.Exit(code=1)

    asyncio.run(_ask())


@app.command()
def login():
    """Authenticate now and store the credential."""
    async def _login():
        config = get_config()
        store = get_credential_store(config)
        async with BackendClient(config.base_url) as client:
            try:
                await store.connect()
                authenticator = SessionAuthenticator(
                    store, client,
                    user_id=config.user_id,
                    password=config.password,
                    refresh_margin=config.refresh_margin_seconds,
                )
                credential = await authenticator.ensure_valid(time.time())
            except (AuthenticationError, StorageError) as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)
            finally:
                await store.disconnect()

        remaining = int(credential.expires_at - time.time())
        console.print(f"[green]Authenticated.[/green] Session {credential.session_id}, "
                      f"expires in {remaining}s")

    asyncio.run(_login())


@app.command()
def logout():
    """Forget the stored credential."""
    async def _logout():
        config = get_config()
        store = get_credential_store(config)
        try:
            await store.connect()
            await store.clear()
        except StorageError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()
        console.print("[green]Logged out.[/green]")

    asyncio.run(_logout())


@app.command()
def health():
    """Check that the backend is reachable."""
    async def _health():
        config = get_config()
        async with BackendClient(config.base_url) as client:
            healthy = await client.check_health(timeout=config.health_timeout_seconds)

        if healthy:
            console.print(f"[green]+[/green] Backend {config.base_url}: OK")
        else:
            console.print(f"[red]x[/red] Backend {config.base_url}: UNREACHABLE")
            raise typer.Exit(code=1)

    asyncio.run(_health())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
