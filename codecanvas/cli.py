"""
Command-line host for CodeCanvas.

Runs prompts through the pipeline, streams status and console entries with
Rich, shows the result in the terminal and writes a standalone HTML page.
"""

import argparse
import asyncio
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.syntax import Syntax
from rich.text import Text

from .console import ConsoleLog, ConsoleLogEntry, LogLevel
from .core.config import CodeCanvasConfig, load_config
from .core.exceptions import CodeCanvasError, format_error_message
from .core.logging import setup_logging
from .models.generation import StaticCodeGenerator
from .orchestrator import CycleReport, Orchestrator, Status, StatusLevel
from .rendering.page import write_page
from .results import ResultKind

STATUS_STYLES = {
    StatusLevel.INFO: "cyan",
    StatusLevel.LOADING: "yellow",
    StatusLevel.SUCCESS: "green",
    StatusLevel.WARNING: "bold yellow",
    StatusLevel.ERROR: "bold red",
}

LOG_STYLES = {
    LogLevel.INFO: "white",
    LogLevel.SUCCESS: "green",
    LogLevel.ERROR: "red",
    LogLevel.DEBUG: "dim",
}


class TerminalHost:
    """Shows orchestrator output on a Rich console."""

    def __init__(self, console: Console, output_page: Path, save_plot_dir: Path | None = None):
        self.console = console
        self.output_page = output_page
        self.save_plot_dir = save_plot_dir

    def show_status(self, status: Status) -> None:
        self.console.print(Text(status.message, style=STATUS_STYLES[status.level]))

    def show_log_entry(self, entry: ConsoleLogEntry) -> None:
        self.console.print(Text(entry.format(), style=LOG_STYLES[entry.level]))

    def show_report(self, orchestrator: Orchestrator, report: CycleReport) -> None:
        if report.code:
            self.console.print(
                Panel(Syntax(report.code, "python", word_wrap=True), title="Generated code")
            )

        result = report.result
        if result.kind is ResultKind.STRUCTURED:
            body = Syntax(result.content, "json", word_wrap=True)
        elif result.kind is ResultKind.PLOT:
            reference = orchestrator.renderer.current_plot
            body = Text(f"Plot rendered: {reference.uri if reference else 'unavailable'}")
        elif result.kind is ResultKind.MARKUP:
            body = Text(f"HTML rendered in a sandboxed frame, see {self.output_page}")
        else:
            body = Text(result.content)

        style = "red" if result.kind is ResultKind.ERROR else "green"
        subtitle = f"⏱️ {report.elapsed_ms:.1f} ms" if report.elapsed_ms is not None else None
        self.console.print(
            Panel(body, title=f"Result: {result.kind.value}", subtitle=subtitle, border_style=style)
        )

        if self.save_plot_dir and orchestrator.renderer.exports is not None:
            saved = orchestrator.renderer.exports.download(self.save_plot_dir)
            self.console.print(Text(f"Plot saved to {saved}", style="green"))

        page = write_page(
            self.output_page,
            orchestrator.container,
            prompt=report.prompt,
            status=orchestrator.status.message,
            status_level=orchestrator.status.level.value,
            elapsed_ms=report.elapsed_ms,
            code=report.code,
            console_log=orchestrator.console_log,
        )
        self.console.print(Text(f"Page written to {page}", style="dim"))


async def run_prompts(
    config: CodeCanvasConfig,
    prompts: list[str] | None,
    host: TerminalHost,
    code_file: Path | None = None,
) -> int:
    """Run *prompts*, or an interactive loop when none are given."""
    generator = StaticCodeGenerator.from_file(code_file) if code_file else None
    orchestrator = Orchestrator.from_config(
        config,
        generator=generator,
        console_log=ConsoleLog(listener=host.show_log_entry),
        on_status=host.show_status,
    )
    if generator is not None:
        orchestrator.pre_request_delay = 0.0

    try:
        if not await orchestrator.prepare():
            return 1

        if prompts:
            exit_code = 0
            for prompt in prompts:
                report = await orchestrator.run(prompt)
                if report is None:
                    continue
                host.show_report(orchestrator, report)
                if not report.succeeded:
                    exit_code = 1
            return exit_code

        host.console.print(Text("Type a request, /clear to reset, /quit to exit.", style="dim"))
        while True:
            prompt = await asyncio.to_thread(Prompt.ask, "[bold cyan]codecanvas[/bold cyan]")
            command = prompt.strip().lower()
            if command in ("/quit", "/exit"):
                return 0
            if command == "/clear":
                orchestrator.clear_all()
                continue
            report = await orchestrator.run(prompt)
            if report is not None:
                host.show_report(orchestrator, report)
    finally:
        orchestrator.renderer.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="codecanvas",
        description="CodeCanvas: turn requests into code, run it, and render the result",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start interactive mode
  codecanvas

  # Run a single request
  codecanvas "plot sin(x) from 0 to 2*pi"

  # Run a local file through the pipeline without generation
  codecanvas --code-file script.py run
        """,
    )
    parser.add_argument("prompt", nargs="*", help="Request(s) to run; omit for interactive mode")
    parser.add_argument("--config", "-c", type=Path, help="YAML or JSON configuration file")
    parser.add_argument("--code-file", type=Path, help="Run this file instead of generating code")
    parser.add_argument("--output", "-o", type=Path, help="HTML page to write results to")
    parser.add_argument("--save-plot", type=Path, help="Directory to save plot images into")
    parser.add_argument("--log-level", "-l", type=str, help="Log level (default from config)")

    args = parser.parse_args(argv)
    console = Console()

    try:
        config = load_config(args.config)
    except CodeCanvasError as exc:
        console.print(Text(format_error_message(exc), style="bold red"))
        return 2

    setup_logging(args.log_level or config.log_level)
    host = TerminalHost(
        console,
        output_page=args.output or Path(config.render.output_page),
        save_plot_dir=args.save_plot,
    )
    prompts = [" ".join(args.prompt)] if args.prompt else None
    if args.code_file and not prompts:
        prompts = [args.code_file.name]

    try:
        return asyncio.run(run_prompts(config, prompts, host, code_file=args.code_file))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
