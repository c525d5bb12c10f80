"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import LOG_ROOT, write_cli_log, write_incoming_log, write_outbound_log

console = Console()


class ForwardInfo:
    """Info about a single forwarded request."""

    def __init__(self, method: str, url: str, timestamp: datetime):
        self.method = method
        self.full_url = url
        self.url = url[:80] + "..." if len(url) > 80 else url
        self.status: int | None = None
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing recent forwards, rejections and errors."""

    def __init__(self, config: Config, log_root: Path = LOG_ROOT):
        self.config = config
        self.log_root = log_root
        self._lock = Lock()
        self._forwards: list[ForwardInfo] = []
        self._max_forwards = 10
        self._counts = {"forwarded": 0, "rejected": 0, "failed": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_incoming(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: Any,
    ) -> None:
        """Record the raw inbound request."""
        write_incoming_log(method, path, headers, body, log_root=self.log_root)

    def log_forward(
        self,
        method: str,
        url: str,
        headers: dict[str, str | bytes],
        body: dict[str, Any],
    ) -> None:
        """Log a request about to be forwarded."""
        with self._lock:
            self._counts["forwarded"] += 1
            self._forwards.insert(0, ForwardInfo(method, url, datetime.now()))
            self._forwards = self._forwards[: self._max_forwards]

            write_outbound_log(method, url, headers, body, log_root=self.log_root)
            write_cli_log("FORWARD", url, log_file=self._cli_log_file, method=method)

            self._refresh()

    def log_response(self, method: str, url: str, status: int) -> None:
        """Attach the upstream status to the matching recent forward."""
        with self._lock:
            for info in self._forwards:
                if info.status is None and info.method == method and info.full_url == url:
                    info.status = status
                    break
            write_cli_log("RESPONSE", url, log_file=self._cli_log_file, status=status)
            self._refresh()

    def log_rejection(self, kind: str, status: int, detail: str) -> None:
        """Log a request refused before forwarding."""
        with self._lock:
            self._counts["rejected"] += 1
            self._errors.insert(0, f"{kind} {status}: {detail[:50]}")
            self._errors = self._errors[:3]
            write_cli_log("REJECT", detail[:200], log_file=self._cli_log_file, kind=kind, status=status)
            self._refresh()

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log a transport failure."""
        with self._lock:
            self._counts["failed"] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("ERROR", message[:200], log_file=self._cli_log_file, route=route, status=status)

    @property
    def _cli_log_file(self) -> Path:
        return self.log_root / "proxy.log"

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_forwards_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Archive Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Forwarded: {self._counts['forwarded']}", style="green")
        stats.append("  |  ")
        stats.append(f"Rejected: {self._counts['rejected']}", style="yellow")
        stats.append("  |  ")
        stats.append(f"Failed: {self._counts['failed']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_forwards_panel(self) -> Panel:
        """Build recent forwards panel."""
        if self._forwards:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=6)
            table.add_column("URL", ratio=3)
            table.add_column("Status", width=6)

            for fwd in self._forwards:
                status = "…" if fwd.status is None else str(fwd.status)
                style = "green" if fwd.status is not None and fwd.status < 400 else "red"
                table.add_row(
                    fwd.timestamp.strftime("%H:%M:%S"),
                    fwd.method,
                    fwd.url,
                    Text(status, style=style if fwd.status is not None else "dim"),
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[green]Recent Forwards[/green]", border_style="green")

    def _build_footer(self) -> Panel:
        """Build footer with errors and the allowlist."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            origins = ", ".join(self.config.forwarding.allowed_origins) or "none"
            content = Text(f"Allowed origins: {origins}", style="dim")

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
