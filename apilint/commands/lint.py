"""Lint command implementation."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
from rich.console import Console
from rich.table import Table

from ..annotations import Annotation
from ..config import Settings
from ..linter import Linter
from ..storage import FileKeyValueStore, Storage


async def load_storage(
    settings: Settings,
    index_url: str | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> Storage:
    """Remote index when `index_url` is given, else the local one."""
    if index_url:
        return await Storage.load_from_server(index_url, client=client, settings=settings)
    return Storage.load_from_local_storage(settings.index_key, FileKeyValueStore.from_settings(settings))


async def build_linter(
    settings: Settings,
    index_url: str | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> Linter:
    """A Linter with the built-in packs plus every configured rule reference."""
    linter = Linter(client=client, settings=settings)
    storage = await load_storage(settings, index_url, client=client)
    await linter.setup(storage)
    return linter


def _count(annotations: list[Annotation]) -> dict[str, int]:
    counts = {"error": 0, "warning": 0}
    for a in annotations:
        counts[a.severity] += 1
    return counts


def run_lint(
    settings: Settings,
    file_path: Path,
    ruleset_name: str = "oas",
    *,
    index_url: str | None = None,
    fail_on: str = "error",
    output_json: bool = False,
) -> int:
    """Lint one document.

    Args:
        settings: Resolved settings
        file_path: Document to lint
        ruleset_name: Registered ruleset to lint against
        index_url: Load rule references from this remote index instead of local storage
        fail_on: Exit with error if this level or higher found ("error" or "warning")
        output_json: Output annotations as JSON instead of a table

    Returns:
        Exit code (0 = success, 1 = findings at or above fail_on)
    """
    console = Console(stderr=True)

    text = file_path.read_text(encoding="utf-8")
    linter = asyncio.run(build_linter(settings, index_url))
    annotations = linter.lint_raw(text, ruleset_name)
    counts = _count(annotations)

    if output_json:
        payload = {
            "file": str(file_path),
            "ruleset": ruleset_name,
            "counts": counts,
            "annotations": [a.to_dict() for a in annotations],
        }
        print(json.dumps(payload, indent=2))
    else:
        _print_human_output(console, file_path, annotations, counts)

    if fail_on == "warning":
        if counts["error"] > 0 or counts["warning"] > 0:
            return 1
    elif counts["error"] > 0:
        return 1
    return 0


def _print_human_output(console: Console, file_path: Path, annotations: list[Annotation], counts: dict[str, int]) -> None:
    if not annotations:
        console.print(f"✓ {file_path.name}: no problems found", style="bold green")
        return

    table = Table(title=str(file_path), show_lines=False)
    table.add_column("Location", style="dim", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Code", style="cyan")
    table.add_column("Message")

    for a in annotations:
        style = "red" if a.severity == "error" else "yellow"
        # Editors count from 1.
        location = f"{a.start.line + 1}:{a.start.char + 1}"
        table.add_row(location, f"[{style}]{a.severity}[/]", str(a.code), a.message)

    console.print(table)
    console.print(
        f"{counts['error']} error(s), {counts['warning']} warning(s)",
        style="bold red" if counts["error"] else "bold yellow",
    )


def run_rulesets(settings: Settings, index_url: str | None = None, *, output_json: bool = False) -> int:
    """List the ruleset names a lint can target."""
    linter = asyncio.run(build_linter(settings, index_url))
    names = linter.list_supported_rulesets()

    if output_json:
        print(json.dumps(names))
        return 0

    console = Console()
    for name in names:
        ruleset = linter.get_ruleset(name)
        count = len(ruleset.active_rules) if ruleset else 0
        console.print(f"[bold]{name}[/] [dim]({count} active rules)[/]")
    return 0
