"""
CLI for modstage.

Provides ``modstage validate`` to check a startup manifest and
``modstage levels`` to show the order NORMAL modules would load in.
"""

import sys

import click

from . import __version__
from .exceptions import DependencyError
from .exceptions import ManifestError
from .levels import build_levels
from .manifest import StartupManifest
from .manifest import read_manifest_file
from .models import LoadCondition
from .models import ModuleDescriptor
from .models import ModuleLoadType
from .validation import ManifestValidationResult
from .validation import ManifestValidator


def print_result(result: ManifestValidationResult) -> None:
    """Print validation result with colored output."""
    click.secho(result.summary(), fg="green" if result.passed else "red", bold=True)
    click.echo()

    severity_colors = {"error": "red", "warning": "yellow", "info": "blue"}
    for check in result.checks:
        symbol = click.style("✓", fg="green") if check.passed else click.style("✗", fg="red")
        severity = click.style(f"[{check.severity}]", fg=severity_colors.get(check.severity, "white"))
        click.echo(f"  {symbol} {severity:20} {check.name}: {check.message}")


def _load_raw(path: str) -> dict:
    try:
        return read_manifest_file(path)
    except ManifestError as e:
        click.secho(str(e), fg="red", err=True)
        sys.exit(2)


def _plan_descriptors(manifest: StartupManifest) -> list[ModuleDescriptor]:
    """Descriptors carrying only what level grouping needs."""
    descriptors = []
    for entry in manifest.data.modules:
        load_type = ModuleLoadType(entry.load_type)
        condition = None
        if load_type != ModuleLoadType.INIT and entry.dependencies:
            condition = LoadCondition(dependencies=entry.dependencies)
        descriptors.append(
            ModuleDescriptor(
                name=entry.name,
                load_type=load_type,
                load_priority=entry.load_priority,
                load_condition=condition,
            )
        )
    return descriptors


@click.group()
@click.version_option(version=__version__, prog_name="modstage")
def cli() -> None:
    """modstage - staged module loading tools."""
    pass


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--quiet", "-q", is_flag=True, help="Only show summary, not individual checks")
def validate(manifest: str, quiet: bool) -> None:
    """Validate a startup manifest.

    MANIFEST is a JSON or YAML manifest file.

    Examples:

        modstage validate ./manifest.json
    """
    click.echo(f"Validating manifest: {manifest}")
    click.echo()

    result = ManifestValidator().validate(_load_raw(manifest))

    if quiet:
        click.echo(result.summary())
    else:
        print_result(result)

    sys.exit(0 if result.passed else 1)


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
def levels(manifest: str) -> None:
    """Show the activation levels of NORMAL modules in MANIFEST.

    INIT modules are listed first, in the order they run.
    """
    raw = _load_raw(manifest)
    result = ManifestValidator().validate(raw)
    if not result.passed:
        click.echo(result.format_errors(), err=True)
        sys.exit(1)

    descriptors = _plan_descriptors(StartupManifest.model_validate(raw))
    names = {d.name for d in descriptors}

    init_modules = sorted(
        (d for d in descriptors if d.load_type == ModuleLoadType.INIT),
        key=lambda d: d.load_priority,
    )
    normal_modules = sorted(
        (d for d in descriptors if d.load_type == ModuleLoadType.NORMAL),
        key=lambda d: d.load_priority,
    )

    if init_modules:
        click.secho("INIT (sequential):", bold=True)
        click.echo(f"  {', '.join(d.name for d in init_modules)}")

    try:
        grouped = build_levels(normal_modules, lambda _: False, names.__contains__)
    except DependencyError as e:
        click.secho(str(e), fg="red", err=True)
        sys.exit(1)

    for index, level in enumerate(grouped):
        click.secho(f"Level {index}:", bold=True)
        click.echo(f"  {', '.join(d.name for d in level)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
