"""CLI entry point for archive-proxy."""

import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from core.config import CONFIG_FILE, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    if len(sys.argv) > 1 and sys.argv[1] == "--origins":
        for origin in config.forwarding.allowed_origins:
            console.print(origin)
        return

    if not config.forwarding.allowed_origins:
        console.print("[yellow]Warning:[/yellow] No allowed origins configured, every request will be rejected")
        console.print(f"[dim]Edit {CONFIG_FILE} and set forwarding.allowed_origins[/dim]")

    # Clear previous logs and start dashboard
    clear_logs()
    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    # Run with dashboard
    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="info" if config.proxy.debug else "warning",
        timeout_keep_alive=config.limits.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Archive Proxy[/bold cyan]

Forwards GET/POST requests to allowlisted archive origins.

[bold]Usage:[/bold]
    archive-proxy              Start with live dashboard
    archive-proxy --origins    Show allowed origins
    archive-proxy --config     Show config location
    archive-proxy --help       Show this help

[bold]Requests:[/bold]
    GET  /?url=<encoded target URL>
    POST /?url=<encoded target URL>   JSON body forwarded as-is;
         optional "url" overrides the query parameter,
         optional "queryString" replaces the target query and forces GET.
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
