"""
plancost CLI entry point.
"""
import sys
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from plancost import __version__
from plancost.config import ConfigError, load_config
from plancost.detect import detect_format
from plancost.models.resource import Resource
from plancost.parsers import terraform
from plancost.reporters import json_reporter, markdown
from plancost.resources.registry import default_registry


def _print_breakdown_table(resources: List[Resource], hours_per_month: int, no_color: bool) -> None:
    """Print a rich breakdown table to stdout."""
    tbl = Table(title="Cost Breakdown", show_header=True, header_style="bold")
    tbl.add_column("Resource / component")
    tbl.add_column("Monthly qty", justify="right")
    tbl.add_column("Unit")

    for r in resources:
        tbl.add_row(f"[bold]{r.name}[/bold]" if not no_color else r.name, "", "")
        for c in r.all_cost_components():
            tbl.add_row(f"  {c.name}", markdown.format_quantity(c.monthly(hours_per_month)), c.unit)

    Console(no_color=no_color).print(tbl)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """plancost: cost component breakdowns for terraform plans."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("plan_path", type=click.Path())
@click.option(
    "--format", "output_format",
    type=click.Choice(["table", "json", "markdown"], case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format (table is written as markdown with --output).",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write report to this file (default: stdout).",
)
@click.option(
    "--config", "config_path",
    type=click.Path(),
    default=None,
    help="Path to a plancost.yaml config file.",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable rich terminal color output.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Report usage carriers and skipped resources.",
)
def breakdown(
    plan_path: str,
    output_format: str,
    output: Optional[str],
    config_path: Optional[str],
    no_color: bool,
    verbose: bool,
) -> None:
    """
    Break a terraform plan JSON file down into cost components.

    PLAN_PATH is the output of `terraform show -json <planfile>`.
    """
    stderr = Console(stderr=True, no_color=no_color)

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        stderr.print(f"[red]Config error:[/red] {exc}")
        sys.exit(2)

    fmt = detect_format(plan_path)
    if fmt != "terraform_plan":
        hint = " (looks like state, not a plan)" if fmt == "terraform_state" else ""
        stderr.print(f"[red]Not a terraform plan JSON file{hint}:[/red] {plan_path}")
        sys.exit(2)

    with stderr.status("[bold]Parsing plan…"):
        try:
            plan = terraform.parse_file(plan_path)
            resource_data, usage = terraform.load_resource_data(plan, config)
        except terraform.PlanParseError as exc:
            stderr.print(f"[red]Parse error:[/red] {exc}")
            sys.exit(2)

    resources, skipped = terraform.build_resources(resource_data, usage, default_registry())

    stderr.print(
        f"Found [bold]{len(resource_data)}[/bold] resources, "
        f"[bold]{len(resources)}[/bold] supported."
    )
    if verbose:
        for addr in sorted(usage):
            stderr.print(f"[dim]Usage for {addr} from {usage[addr].address}[/dim]")
        for addr in skipped:
            stderr.print(f"[dim]Skipping {addr}[/dim]")

    fmt = output_format.lower()
    if fmt == "table" and not output:
        _print_breakdown_table(resources, config.hours_per_month, no_color)
        sys.exit(0)

    if fmt == "json":
        report_content = json_reporter.build_report(resources, plan_path)
    else:
        report_content = markdown.build_report(resources, plan_path, config.hours_per_month)

    if output:
        with open(output, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(report_content)
        stderr.print(f"Report written to [bold]{output}[/bold]")
    else:
        click.echo(report_content)

    sys.exit(0)


@cli.command("resources")
def list_resources() -> None:
    """List the resource types plancost can break down."""
    for item in default_registry().items():
        line = item.name
        if item.notes:
            line += "  (" + " ".join(item.notes) + ")"
        click.echo(line)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
