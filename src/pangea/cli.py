from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pangea.errors import AttributeValidationError, PangeaError
from pangea.log import configure_logging
from pangea.manifest import load_manifest, synthesize
from pangea.models import OutputFormat, SynthesisConfig, SynthesisResult, category_for
from pangea.resources.registry import registered_types
from pangea.synthesizer import TerraformSynthesizer
from pangea.version import __version__
from pangea.writer import TerraformWriter

app = typer.Typer(
    name="pangea",
    help="Synthesize validated AWS Terraform JSON from declarative manifests",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"pangea version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    configure_logging(verbose)


def _report_error(error: PangeaError) -> None:
    if isinstance(error, AttributeValidationError):
        console.print(f"[red]✗ Invalid attributes for {error.resource_type}[/]")
        for message in error.errors:
            console.print(f"  [red]•[/] {escape(message)}")
    else:
        console.print(f"[red]✗ {escape(str(error))}[/]")


def _load_and_synthesize(manifest_path: Path, config: SynthesisConfig) -> TerraformSynthesizer:
    try:
        manifest = load_manifest(manifest_path)
        return synthesize(manifest, config)
    except PangeaError as e:
        _report_error(e)
        sys.exit(1)


@app.command()
def synth(
    manifest_path: Annotated[
        Path,
        typer.Argument(help="YAML or JSON manifest describing the resources"),
    ],
    output_dir: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output directory for Terraform files"),
    ] = Path("./terraform-output"),
    flat: Annotated[
        bool,
        typer.Option("--flat", help="Write all resources to a single main file"),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.JSON,
    region: Annotated[
        str | None,
        typer.Option("--region", "-r", help="Default AWS region for the aws provider"),
    ] = None,
    terraform_version: Annotated[
        str,
        typer.Option("--tf-version", help="Required Terraform version constraint"),
    ] = ">= 1.5.0",
    aws_version: Annotated[
        str,
        typer.Option("--aws-version", help="Required AWS provider version constraint"),
    ] = "~> 5.0",
) -> None:
    """Validate a manifest and write the synthesized Terraform configuration."""
    config = SynthesisConfig(
        output_dir=output_dir,
        group_by_category=not flat,
        output_format=output_format,
        terraform_version=terraform_version,
        aws_provider_version=aws_version,
        region=region,
    )

    console.print(
        Panel(
            f"[bold blue]Pangea[/]\nManifest: {manifest_path}\nOutput: {output_dir}",
            title="Synthesis Configuration",
        )
    )

    synthesizer = _load_and_synthesize(manifest_path, config)
    files = TerraformWriter(config).write(synthesizer, output_dir)
    result = SynthesisResult(
        success=True,
        output_path=output_dir,
        resources_synthesized=synthesizer.resource_count,
        files=files,
    )

    console.print(f"\n[green]✓[/] Synthesized {result.resources_synthesized} resources")
    for path in result.files:
        console.print(f"  • {path.name}")
    console.print(f"[green]✓[/] Output written to: {result.output_path}")


@app.command()
def validate(
    manifest_path: Annotated[
        Path,
        typer.Argument(help="YAML or JSON manifest describing the resources"),
    ],
) -> None:
    """Validate every resource in a manifest without writing any files."""
    config = SynthesisConfig(output_dir=Path("."))
    synthesizer = _load_and_synthesize(manifest_path, config)

    table = Table(title="Validated resources")
    table.add_column("Address")
    table.add_column("Category")
    for resource_type, name, _body in synthesizer.resources():
        table.add_row(f"{resource_type}.{name}", category_for(resource_type).value)
    console.print(table)
    console.print(f"\n[green]✓[/] {synthesizer.resource_count} resources are valid")


@app.command()
def resources() -> None:
    """List the resource types that have a registered builder."""
    table = Table(title="Supported resource types")
    table.add_column("Resource type")
    table.add_column("Category")
    for resource_type in registered_types():
        table.add_row(resource_type, category_for(resource_type).value)
    console.print(table)


if __name__ == "__main__":
    app()
