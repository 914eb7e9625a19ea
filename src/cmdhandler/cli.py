"""
cmdhandler CLI - command-line interface for the plugin dispatcher.

Starts the API server and helps operators inspect what a request would run.
"""

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="cmdhandler",
    help="cmdhandler - run chat and CI triggered plugins",
    no_args_is_help=True,
)

console = Console()


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind to (default: API_HOST)"),
    port: int = typer.Option(None, help="Port to bind to (default: API_PORT)"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
    ssl_certfile: str = typer.Option(None, help="TLS certificate (default: SSL_CERTFILE)"),
    ssl_keyfile: str = typer.Option(None, help="TLS private key (default: SSL_KEYFILE)"),
) -> None:
    """
    Start the FastAPI server.

    Serves the plugin trigger endpoint. TLS is enabled when both a
    certificate and a key are configured.
    """
    import uvicorn

    from cmdhandler.config import settings

    host = host or settings.api_host
    port = port or settings.api_port
    certfile = ssl_certfile or settings.ssl_certfile or None
    keyfile = ssl_keyfile or settings.ssl_keyfile or None

    if bool(certfile) != bool(keyfile):
        console.print(
            "[bold red]Error:[/bold red] TLS needs both a certificate and a key"
        )
        raise typer.Exit(1)

    console.print("[bold green]Starting cmdhandler API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"  TLS: {'on' if certfile else 'off'}")
    console.print(f"  Plugin root: {settings.plugin_root}")

    uvicorn.run(
        "cmdhandler.api.app:app",
        host=host,
        port=port,
        reload=reload,
        ssl_certfile=certfile,
        ssl_keyfile=keyfile,
    )


@app.command()
def loaders() -> None:
    """List the supported loaders and their argument syntax."""
    from cmdhandler.loaders import LoaderRegistry

    table = Table(title="Loaders")
    table.add_column("Loader", style="cyan")
    table.add_column("Command")
    table.add_column("Argument style")

    for descriptor in LoaderRegistry.default():
        table.add_row(
            descriptor.id,
            " ".join(descriptor.invocation_tokens),
            descriptor.argument_style.value,
        )

    console.print(table)


@app.command("show-command")
def show_command(
    loader: str = typer.Argument(..., help="Loader id (e.g. python, go)"),
    plugin: str = typer.Argument(..., help="Plugin file name"),
    params: list[str] = typer.Argument(None, help="Plugin parameters as KEY=VALUE"),
    plugin_root: str = typer.Option(None, help="Plugin root (default: PLUGIN_ROOT)"),
) -> None:
    """
    Show the command a request would run, without running it.

    Nothing is audited, counted or executed.
    """
    from dataclasses import replace
    from pathlib import Path

    from cmdhandler.config import settings
    from cmdhandler.dispatch import DispatchRequest, EngineConfig, prepare_dispatch
    from cmdhandler.exceptions import InvalidRequestError

    pairs: list[tuple[str, str]] = [("loader", loader), ("plugin", plugin)]
    for param in params or []:
        key, sep, value = param.partition("=")
        if not sep or not key:
            console.print(f"[bold red]Error:[/bold red] Expected KEY=VALUE, got: {param}")
            raise typer.Exit(1)
        pairs.append((key, value))

    config = EngineConfig.from_settings(settings)
    if plugin_root:
        config = replace(config, plugin_root=Path(plugin_root))

    try:
        prepared = prepare_dispatch(config, DispatchRequest.from_params(pairs))
    except InvalidRequestError as e:
        console.print(f"[bold red]Rejected:[/bold red] {e.reason}")
        raise typer.Exit(1)

    mode = "synchronous" if prepared.request.is_synchronous else "background"
    console.print(f"[bold blue]Mode:[/bold blue] {mode}")
    console.print(f"[bold blue]Executable:[/bold blue] {prepared.invocation.executable}")
    console.print("[bold blue]Arguments:[/bold blue]")
    for argument in prepared.invocation.arguments:
        console.print(f"  {argument}", markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
