"""CLI entrypoint for apilint."""

import logging
import sys
from pathlib import Path

import click
import httpx

from . import __version__
from .config import Settings
from .errors import ApilintError
from .storage import RuleRef


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        logging.getLogger("apilint").setLevel(logging.WARNING)
        return

    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    root = logging.getLogger("apilint")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG)


def _run(fn, *args, **kwargs) -> None:
    """Call a command implementation and exit with its code."""
    try:
        exit_code = fn(*args, **kwargs)
    except (ApilintError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    except httpx.HTTPError as e:
        raise click.ClickException(f"Request failed: {e}") from e
    sys.exit(exit_code)


@click.group()
@click.version_option(__version__, prog_name="apilint")
@click.option(
    "--home",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory holding the persisted rule index (defaults to $APILINT_HOME or ~/.apilint)",
)
@click.option("--index-key", default=None, help="Storage key of the rule index")
@click.option("--base-url", default=None, help="Base URL for relative rules/... fetches")
@click.option("--verbose", is_flag=True, help="Log fetches and registry changes to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    home: Path | None,
    index_key: str | None,
    base_url: str | None,
    verbose: bool,
) -> None:
    """apilint - Lint OpenAPI and AsyncAPI documents against named rulesets.

    Rulesets come from the built-in packs and from the rule index, a
    name -> {href | value} map kept on disk or served over HTTP.
    """
    ctx.ensure_object(dict)
    _configure_logging(verbose)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj["settings"] = settings.with_overrides(home=home, index_key=index_key, base_url=base_url)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--ruleset", "-r", default="oas", show_default=True, help="Ruleset to lint against")
@click.option("--index-url", default=None, help="Load the rule index from this URL instead of local storage")
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning"]),
    default="error",
    help="Exit with error if this level or higher found",
)
@click.option("--json", "output_json", is_flag=True, help="Output annotations as JSON")
@click.pass_context
def lint(
    ctx: click.Context,
    file: Path,
    ruleset: str,
    index_url: str | None,
    fail_on: str,
    output_json: bool,
) -> None:
    """Lint FILE (JSON or YAML) against a ruleset.

    Examples:

        apilint lint openapi.yaml

        apilint lint -r custom --fail-on warning openapi.json
    """
    from .commands.lint import run_lint

    _run(
        run_lint,
        ctx.obj["settings"],
        file,
        ruleset,
        index_url=index_url,
        fail_on=fail_on,
        output_json=output_json,
    )


@cli.command("rulesets")
@click.option("--index-url", default=None, help="Load the rule index from this URL instead of local storage")
@click.option("--json", "output_json", is_flag=True, help="Output names as JSON")
@click.pass_context
def rulesets(ctx: click.Context, index_url: str | None, output_json: bool) -> None:
    """List the ruleset names available to lint."""
    from .commands.lint import run_rulesets

    _run(run_rulesets, ctx.obj["settings"], index_url, output_json=output_json)


# -----------------------------------------------------------------------------
# Rule index management
# -----------------------------------------------------------------------------


@cli.group()
def rules() -> None:
    """Manage the locally persisted rule index."""


def _rule_ref(name: str, href: str | None, value: str | None, file: Path | None) -> RuleRef:
    given = [opt for opt, v in (("--href", href), ("--value", value), ("--file", file)) if v is not None]
    if len(given) != 1:
        raise click.UsageError("Pass exactly one of --href, --value or --file.")
    if file is not None:
        value = file.read_text(encoding="utf-8")
    return RuleRef(name=name, href=href, value=value)


_source_options = [
    click.option("--href", default=None, help="URL or rules/... path of a ruleset file"),
    click.option("--value", default=None, help="Inline ruleset text"),
    click.option(
        "--file",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="Read inline ruleset text from this file",
    ),
]


def _with_source_options(fn):
    for option in reversed(_source_options):
        fn = option(fn)
    return fn


@rules.command("list")
@click.option("--json", "output_json", is_flag=True, help="Output the raw index as JSON")
@click.pass_context
def rules_list(ctx: click.Context, output_json: bool) -> None:
    """Show the configured rule references."""
    from .commands.rules import run_rules_list

    _run(run_rules_list, ctx.obj["settings"], output_json=output_json)


@rules.command("add")
@click.argument("name")
@_with_source_options
@click.option("--strict", is_flag=True, help="Fail if NAME is already configured")
@click.pass_context
def rules_add(
    ctx: click.Context,
    name: str,
    href: str | None,
    value: str | None,
    file: Path | None,
    strict: bool,
) -> None:
    """Add a rule reference; an existing NAME is left unchanged."""
    from .commands.rules import run_rules_add

    _run(run_rules_add, ctx.obj["settings"], _rule_ref(name, href, value, file), strict=strict)


@rules.command("set")
@click.argument("name")
@_with_source_options
@click.pass_context
def rules_set(
    ctx: click.Context,
    name: str,
    href: str | None,
    value: str | None,
    file: Path | None,
) -> None:
    """Add or replace a rule reference."""
    from .commands.rules import run_rules_add

    _run(run_rules_add, ctx.obj["settings"], _rule_ref(name, href, value, file), replace=True)


@rules.command("remove")
@click.argument("name")
@click.pass_context
def rules_remove(ctx: click.Context, name: str) -> None:
    """Remove a rule reference."""
    from .commands.rules import run_rules_remove

    _run(run_rules_remove, ctx.obj["settings"], name)


# -----------------------------------------------------------------------------
# LSP server command
# -----------------------------------------------------------------------------


@cli.command("lsp")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "tcp"]),
    default="stdio",
    show_default=True,
    help="Transport method (stdio for editors, tcp for debugging)",
)
@click.option("--ruleset", "-r", default="oas", show_default=True, help="Default ruleset for opened documents")
@click.pass_context
def lsp(ctx: click.Context, transport: str, ruleset: str) -> None:
    """Start the LSP server publishing lint annotations as diagnostics.

    Editors may pick a ruleset per workspace with the initialization
    option {"ruleset": NAME}.

    Examples:

        apilint lsp --transport stdio

        apilint --home ./.apilint lsp -r custom
    """
    from .lsp import start_server

    start_server(settings=ctx.obj["settings"], ruleset_name=ruleset, transport=transport)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
