"""Manage the locally persisted rule index."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from ..config import Settings
from ..storage import FileKeyValueStore, RuleRef, Storage


def _local_storage(settings: Settings) -> Storage:
    return Storage.load_from_local_storage(settings.index_key, FileKeyValueStore.from_settings(settings))


def run_rules_list(settings: Settings, *, output_json: bool = False) -> int:
    storage = _local_storage(settings)

    if output_json:
        print(json.dumps(storage.to_index(), indent=2))
        return 0

    console = Console()
    if not len(storage):
        console.print("No rules configured.", style="dim")
        return 0

    table = Table(title=f"Rules ({settings.index_key})")
    table.add_column("Name", style="bold")
    table.add_column("Source")
    for ref in storage:
        if ref.href:
            source = ref.href
        elif ref.value:
            first_line = ref.value.strip().splitlines()[0] if ref.value.strip() else ""
            source = f"[dim]inline:[/] {first_line}"
        else:
            source = "[red]invalid[/]"
        table.add_row(ref.name, source)
    console.print(table)
    return 0


def run_rules_add(settings: Settings, ref: RuleRef, *, replace: bool = False, strict: bool = False) -> int:
    """Add (or with `replace`, upsert) a rule reference and persist the index."""
    console = Console(stderr=True)
    storage = _local_storage(settings)

    existed = ref.name in storage
    if replace:
        storage.set(ref)
    else:
        storage.add(ref, strict=strict)
    storage.persist()

    if existed and not replace:
        console.print(f"Rule '{ref.name}' already configured; left unchanged.", style="yellow")
    else:
        console.print(f"✓ Saved rule '{ref.name}'", style="green")
    return 0


def run_rules_remove(settings: Settings, name: str) -> int:
    console = Console(stderr=True)
    storage = _local_storage(settings)

    if not storage.remove(name):
        console.print(f"Rule '{name}' is not configured.", style="bold red")
        return 1

    storage.persist()
    console.print(f"✓ Removed rule '{name}'", style="green")
    return 0
