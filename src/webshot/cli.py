"""
CLI entry point for webshot.

This module provides the Typer-based command-line interface for webshot.

Commands:
    take        Capture a URL
    list        List stored captures
    info        Show details of a capture
    view        Write a capture's (re-encoded) image to a file
    tools       List the callable tools and their input schemas
    call        Call a tool with JSON arguments and print protocol content
    doctor      Check the renderer, Pillow and the storage root

The CLI is thin: every data command goes through ScreenshotService.call_tool,
the same boundary a protocol server would use.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from webshot import __version__
from webshot.errors import WebshotError
from webshot.schema import WebshotConfig, load_config
from webshot.service import ScreenshotService
from webshot.tools import ToolOutput

app = typer.Typer(
    name="webshot",
    help="Capture, store and re-encode web page screenshots.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a webshot YAML config file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging on stderr."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output the result payload as JSON."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]webshot[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    webshot - Capture web pages through gowitness and serve them back.
    """
    pass


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(config_path: Path | None) -> WebshotConfig:
    if config_path is None:
        return WebshotConfig()
    return load_config(config_path)


def _service(config_path: Path | None, verbose: bool) -> ScreenshotService:
    """Build a service, exiting with a readable message on a bad config."""
    _configure_logging(verbose)
    try:
        return ScreenshotService(_load(config_path))
    except WebshotError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _finish(output: ToolOutput, json_output: bool) -> None:
    """Print a failed output (or any output in JSON mode) and exit accordingly."""
    if json_output:
        print(json.dumps(output.payload, indent=2, default=str))
    elif not output.success:
        console.print(f"[red]✗ {escape(output.error or '')}[/red]")
        suggestion = output.metadata.get("suggestion")
        if suggestion:
            console.print(f"[dim]Suggestion: {escape(suggestion)}[/dim]")
    raise typer.Exit(code=0 if output.success else 1)


def _write_image(output: ToolOutput, out: Path | None, json_output: bool) -> None:
    if out is None or output.image is None:
        return
    out.write_bytes(output.image.data)
    if not json_output:
        console.print(f"[dim]Wrote {output.image.size} bytes ({output.image.mime_type}) to {out}[/dim]")


@app.command()
def take(
    url: Annotated[str, typer.Argument(help="The URL to take a screenshot of.")],
    width: Annotated[int, typer.Option(help="Viewport width in pixels.")] = 1200,
    height: Annotated[int, typer.Option(help="Viewport height in pixels.")] = 800,
    delay: Annotated[float, typer.Option(help="Seconds to wait before capturing.")] = 3,
    timeout: Annotated[float, typer.Option(help="Renderer timeout in seconds.")] = 10,
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Also write the (re-encoded) image to this file."),
    ] = None,
    optimize: Annotated[bool, typer.Option(help="Re-encode the written image.")] = True,
    quality: Annotated[int, typer.Option(help="Re-encode quality (1-100).")] = 80,
    image_format: Annotated[
        str,
        typer.Option("--format", help="Re-encode format: jpeg, png or webp."),
    ] = "jpeg",
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Capture a URL and store it under a new id.

    Example:
        $ webshot take https://example.com --out shot.jpg
    """
    service = _service(config, verbose)
    output = service.take_screenshot(
        url,
        width=width,
        height=height,
        delay=delay,
        timeout=timeout,
        include_image=out is not None,
        optimize=optimize,
        quality=quality,
        format=image_format,
    )
    if output.success:
        _write_image(output, out, json_output)
        if not json_output:
            data = output.data
            console.print(f"[green]✓[/green] Screenshot [bold]{data['screenshot_id']}[/bold]")
            console.print(f"  URL: {data['url']}")
            console.print(f"  File: {data['file_path']} ({data['file_size']} bytes)")
    _finish(output, json_output)


@app.command("list")
def list_command(
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of screenshots to show."),
    ] = 50,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    List stored screenshots, newest first.

    Example:
        $ webshot list -n 10
    """
    service = _service(config, verbose)
    output = service.list_screenshots(limit)

    if output.success and not json_output:
        screenshots = output.data["screenshots"]
        if not screenshots:
            console.print("[dim]No screenshots found.[/dim]")
        else:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Screenshot ID", style="cyan")
            table.add_column("Date")
            table.add_column("Created")
            table.add_column("Size", justify="right")
            table.add_column("File")

            for s in screenshots:
                sid = s["screenshot_id"]
                table.add_row(
                    sid if sid != "unknown" else "[yellow]unknown[/yellow]",
                    s["date"],
                    s["created"][:19],
                    str(s["size"]),
                    s["file_name"],
                )

            console.print(table)
            shown = len(screenshots)
            console.print(f"[dim]Showing {shown} of {output.data['count']}[/dim]")
    _finish(output, json_output)


@app.command()
def info(
    screenshot_id: Annotated[str, typer.Argument(help="The screenshot ID to describe.")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show details of a stored screenshot.

    Example:
        $ webshot info 3f0c...
    """
    service = _service(config, verbose)
    output = service.get_screenshot_info(screenshot_id)

    if output.success and not json_output:
        data = output.data
        console.print(f"[bold]Screenshot {data['screenshot_id']}[/bold]")
        console.print(f"  File: {data['file_path']}")
        console.print(f"  Size: {data['file_size']} bytes")
        console.print(f"  Created: {data['created'][:19]}")
        console.print(f"  Modified: {data['modified'][:19]}")
        if data.get("database_info"):
            console.print(f"  Database: [dim]{data['database_info']}[/dim]")
    _finish(output, json_output)


@app.command()
def view(
    screenshot_id: Annotated[str, typer.Argument(help="The screenshot ID to view.")],
    out: Annotated[
        Path,
        typer.Option("--out", "-o", help="File to write the image to."),
    ],
    optimize: Annotated[bool, typer.Option(help="Re-encode the image for viewing.")] = True,
    quality: Annotated[int, typer.Option(help="Re-encode quality (1-100).")] = 80,
    image_format: Annotated[
        str,
        typer.Option("--format", help="Re-encode format: jpeg, png or webp."),
    ] = "jpeg",
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Write a stored screenshot's image to a file.

    Example:
        $ webshot view 3f0c... --out shot.webp --format webp
    """
    service = _service(config, verbose)
    output = service.view_screenshot(
        screenshot_id,
        optimize=optimize,
        quality=quality,
        format=image_format,
    )
    if output.success:
        _write_image(output, out, json_output)
        if not json_output:
            console.print(
                f"[green]✓[/green] {output.data['file_size']} -> {output.data['optimized_size']} bytes "
                f"({output.data['optimization_ratio']})"
            )
    _finish(output, json_output)


@app.command()
def tools(
    json_output: JsonOption = False,
) -> None:
    """List the callable tools and their input schemas."""
    service = ScreenshotService()
    described = service.list_tools()

    if json_output:
        print(json.dumps({"tools": described}, indent=2))
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan")
    table.add_column("Description")
    table.add_column("Required")
    for tool in described:
        required = ", ".join(tool["inputSchema"].get("required", [])) or "-"
        table.add_row(tool["name"], tool["description"], required)
    console.print(table)


@app.command()
def call(
    tool_name: Annotated[str, typer.Argument(help="Tool to call, e.g. view_screenshot.")],
    args_json: Annotated[
        str,
        typer.Option("--args", "-a", help="Tool arguments as a JSON object."),
    ] = "{}",
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Call a tool and print the protocol content it returns.

    Example:
        $ webshot call list_screenshots --args '{"limit": 5}'
    """
    try:
        args: Any = json.loads(args_json)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid --args JSON: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    if not isinstance(args, dict):
        console.print("[red]--args must be a JSON object[/red]")
        raise typer.Exit(code=1)

    service = _service(config, verbose)
    output = service.call_tool(tool_name, args)
    print(json.dumps({"content": output.to_content(), "isError": not output.success}, indent=2))
    raise typer.Exit(code=0 if output.success else 1)


@app.command()
def doctor(
    config: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Check system environment and dependencies.

    Verifies:
    - Python version (3.11+)
    - Pillow availability
    - Renderer (gowitness) resolution
    - Storage root writability

    Example:
        $ webshot doctor
    """
    checks = []
    all_ok = True

    # Check 1: Python version
    py_version = sys.version_info
    py_version_str = f"{py_version.major}.{py_version.minor}.{py_version.micro}"
    py_ok = py_version >= (3, 11)
    checks.append({
        "name": "Python version",
        "ok": py_ok,
        "value": py_version_str,
        "message": "OK" if py_ok else "Requires Python 3.11+",
    })
    all_ok = all_ok and py_ok

    # Check 2: Pillow
    try:
        import PIL

        checks.append({"name": "Pillow", "ok": True, "value": PIL.__version__, "message": "OK"})
    except ImportError as e:
        checks.append({"name": "Pillow", "ok": False, "value": "", "message": str(e)})
        all_ok = False

    try:
        cfg = _load(config)
    except WebshotError as e:
        checks.append({"name": "Config", "ok": False, "value": str(config), "message": e.message})
        cfg = None
        all_ok = False

    if cfg is not None:
        # Check 3: Renderer
        service = ScreenshotService(cfg)
        try:
            binary = service.locator.resolve()
            checks.append({"name": "Renderer", "ok": True, "value": binary, "message": "OK"})
        except WebshotError as e:
            checks.append({
                "name": "Renderer",
                "ok": False,
                "value": "gowitness",
                "message": f"{e.message}\n{e.suggestion}",
            })
            all_ok = False

        # Check 4: Storage root
        root = cfg.storage_root.resolve()
        if root.exists():
            storage_ok = root.is_dir() and os.access(root, os.W_OK)
            storage_message = "Writable" if storage_ok else "Not a writable directory"
        else:
            parent = next((p for p in root.parents if p.exists()), None)
            storage_ok = parent is not None and os.access(parent, os.W_OK)
            storage_message = (
                "Not found (will be created on first capture)"
                if storage_ok
                else f"Cannot be created under {parent}"
            )
        checks.append({
            "name": "Storage root",
            "ok": storage_ok,
            "value": str(root),
            "message": storage_message,
        })
        all_ok = all_ok and storage_ok

    if json_output:
        print(json.dumps({"ok": all_ok, "version": __version__, "checks": checks}, indent=2))
    else:
        console.print(f"[bold]webshot Doctor[/bold] v{__version__}")
        console.print()
        for check in checks:
            icon = "[green]✓[/green]" if check["ok"] else "[red]✗[/red]"
            if check["ok"]:
                console.print(f"{icon} {check['name']}: [dim]{check['value']}[/dim] - {check['message']}")
            else:
                console.print(f"{icon} {check['name']}: [dim]{check['value']}[/dim]")
                console.print(f"    [red]{check['message']}[/red]")
        console.print()
        if all_ok:
            console.print("[green]All checks passed![/green]")
        else:
            console.print("[yellow]Some checks failed. See above for details.[/yellow]")

    raise typer.Exit(code=0 if all_ok else 1)


if __name__ == "__main__":
    app()
