"""CLI entry point for codechat."""

import asyncio

import click
import httpx
import uvicorn

from .client import RelayClient, SessionController, TranscriptCache
from .config import get_cache_dir, get_port, get_relay_url
from .errors import CodeChatError

url_option = click.option("--url", default=None, help="Relay base URL.")


@click.group()
def main():
    """Chat with a Claude agent through the codechat relay."""
    pass


@main.command()
@click.option("--port", default=None, type=int, help="Port to serve on (default: $PORT or 3001).")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int | None, host: str):
    """Start the relay server."""
    port = port or get_port()
    click.echo(f"Starting codechat relay on http://{host}:{port}")
    uvicorn.run("codechat.server:app", host=host, port=port, reload=False)


@main.command()
@url_option
def sessions(url: str | None):
    """List sessions known to the relay."""

    async def run():
        async with RelayClient(url or get_relay_url()) as client:
            return await client.list_sessions()

    for s in _run(run()):
        marker = "*" if s.provisional else " "
        click.echo(f"{marker} {s.id}  {s.name}  {s.cwd}  {s.last_accessed:%Y-%m-%d %H:%M}")


@main.command()
@click.argument("cwd", type=click.Path(exists=True, file_okay=False))
@url_option
def new(cwd: str, url: str | None):
    """Create a session rooted at CWD."""

    async def run():
        async with RelayClient(url or get_relay_url()) as client:
            return await client.create_session(cwd)

    session = _run(run())
    click.echo(session.id)


@main.command()
@click.argument("session_id")
@url_option
def delete(session_id: str, url: str | None):
    """Delete a session and its cached transcript."""

    async def run():
        async with RelayClient(url or get_relay_url()) as client:
            controller = SessionController(client, TranscriptCache(get_cache_dir()))
            await controller.load_sessions()
            await controller.delete_session(session_id)

    _run(run())
    click.echo(f"Deleted {session_id}")


@main.command()
@click.argument("message")
@click.option("--session", "session_id", default=None, help="Session to continue.")
@url_option
def chat(message: str, session_id: str | None, url: str | None):
    """Send MESSAGE and stream the answer. Ctrl-C stops the turn."""
    printer = _StreamPrinter()

    async def run():
        async with RelayClient(url or get_relay_url()) as client:
            controller = SessionController(client, TranscriptCache(get_cache_dir()), on_change=printer)
            await controller.load_sessions()
            if session_id and not controller.select_session(session_id):
                raise click.ClickException(f"Unknown session: {session_id}")

            # Ctrl-C cancels this task; send() keeps the partial answer.
            reply = await controller.send(message)
            return reply, controller.active_session_id

    try:
        reply, active_session_id = _run(run())
    except KeyboardInterrupt:
        click.echo("\n[stopped]", err=True)
        return

    click.echo()
    if reply is None:
        return
    for tool in reply.tools:
        click.echo(f"  [{tool.status}] {tool.name}", err=True)
    if reply.usage:
        click.echo(
            f"tokens in={reply.usage.get('input_tokens', 0)} out={reply.usage.get('output_tokens', 0)}"
            + (f" cost=${reply.cost:.4f}" if reply.cost is not None else ""),
            err=True,
        )
    if active_session_id:
        click.echo(f"session: {active_session_id}", err=True)


class _StreamPrinter:
    """Echo newly arrived answer text of the last assistant message."""

    def __init__(self):
        self._printed = 0

    def __call__(self, controller: SessionController) -> None:
        messages = controller.messages
        if not messages or messages[-1].role != "assistant":
            return
        text = messages[-1].content
        if len(text) > self._printed:
            click.echo(text[self._printed:], nl=False)
            self._printed = len(text)


def _run(coro):
    try:
        return asyncio.run(coro)
    except (CodeChatError, httpx.HTTPError) as e:
        raise click.ClickException(str(e)) from e
