"""brepkit CLI for local development and testing.

Provides a command-line interface to build the built-in models, validate
them, inspect their shape definitions and read back saved results.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

import kernel
from kernel.operations import bounding_volume
from kernel.tolerance import DEFAULT_TOLERANCE
from kernel.validation import ValidationCheck, ValidationConfig
from shape_ir.schema import SCHEMA_VERSION, BuildResult, Parameters
from shape_ir.serialize import (
    InterchangeError,
    decode_result,
    dump_jsonl,
    load_jsonl,
    to_json_dict,
    to_json_string,
)

from .host import ModelError, ModelHost
from .logging_setup import configure_preset, get_logger
from .models import MODELS, UnknownModel, run_model

logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="brepkit",
    help="brepkit CLI for building and validating B-rep models",
    add_completion=False,
)

console = Console()


def _display_error(message: str, error: Optional[Exception] = None) -> None:
    """Display error message with styling."""
    error_text = Text(f"❌ {message}", style="bold red")
    if error:
        error_text.append(f"\n   {str(error)}", style="red")
    console.print(Panel(error_text, title="Error", border_style="red"))


def _display_success(message: str) -> None:
    """Display success message with styling."""
    success_text = Text(f"✅ {message}", style="bold green")
    console.print(Panel(success_text, title="Success", border_style="green"))


def _setup_logging(verbose: bool) -> None:
    configure_preset("verbose" if verbose else "quiet")


def _parse_parameters(values: Optional[List[str]]) -> Parameters:
    params = Parameters()
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--param")
        params.insert(key.strip(), value.strip())
    return params


@app.command()
def info() -> None:
    """Display brepkit information and the available models."""
    console.print(Panel(
        f"brepkit {kernel.__version__}\n"
        f"Interchange schema {SCHEMA_VERSION}",
        title="brepkit",
        border_style="blue"
    ))

    table = Table(title="Models")
    table.add_column("Model", style="cyan")
    table.add_column("Description", style="white")
    for name, model in sorted(MODELS.items()):
        summary = model.__doc__.strip().splitlines()[0] if model.__doc__ else ""
        table.add_row(name, summary)
    console.print(table)

    checks = Table(title="Validation Checks")
    checks.add_column("Check", style="cyan")
    for check in ValidationCheck:
        checks.add_row(check.value)
    console.print(checks)


@app.command()
def build(
    model: str = typer.Argument(..., help="Name of the model to build"),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Model parameter as key=value"),
    tolerance: float = typer.Option(DEFAULT_TOLERANCE, "--tolerance", "-t", help="Geometric tolerance"),
    check: Optional[List[str]] = typer.Option(None, "--check", "-c", help="Validation check to run (repeatable, default all)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output path for the JSON result"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Build a model, validate it and print its topology."""
    _setup_logging(verbose)
    params = _parse_parameters(param)

    try:
        config_data = {"tolerance": tolerance}
        if check:
            config_data["checks"] = check
        config = ValidationConfig.from_dict(config_data)
        host = ModelHost(model, params, config)
    except UnknownModel as e:
        _display_error("Unknown model", e)
        raise typer.Exit(1)
    except ValueError as e:
        _display_error("Invalid configuration", e)
        raise typer.Exit(1)

    console.print(f"🔄 Building model: {model}")
    try:
        result = host.build_once()
    except ModelError as e:
        _display_error(f"Failed to build model '{model}'", e)
        _display_findings(e.result)
        if output:
            _write_result(e.result, Path(output))
        raise typer.Exit(1)

    _display_result(result)
    if output:
        _write_result(result, Path(output))
        _display_success(f"Result written to: {output}")
    else:
        _display_success(f"Model '{model}' built and validated")


@app.command()
def describe(
    model: str = typer.Argument(..., help="Name of the model to describe"),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Model parameter as key=value"),
) -> None:
    """Print the shape definition a model produces, as JSON."""
    params = _parse_parameters(param)
    try:
        shape = run_model(model, params)
    except UnknownModel as e:
        _display_error("Unknown model", e)
        raise typer.Exit(1)
    except ValueError as e:
        _display_error(f"Model '{model}' rejected its parameters", e)
        raise typer.Exit(1)

    data = {
        "model": model,
        "parameters": params.to_dict(),
        "shape": to_json_dict(shape),
        "bounding_volume": bounding_volume(shape).to_dict(),
    }
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@app.command()
def show(
    path: str = typer.Argument(..., help="Result file written by 'build --output' (.json or .jsonl)"),
) -> None:
    """Display build results saved by an earlier build."""
    file_path = Path(path)
    try:
        if file_path.suffix.lower() == ".jsonl":
            results = list(load_jsonl(file_path))
        else:
            results = [decode_result(file_path.read_bytes())]
    except FileNotFoundError as e:
        _display_error("Result file not found", e)
        raise typer.Exit(1)
    except InterchangeError as e:
        _display_error(f"Cannot read results from {path}", e)
        raise typer.Exit(1)

    for result in results:
        status = "built" if result.ok else "failed"
        console.print(f"📦 {result.model}: {status}")
        if result.ok:
            _display_result(result)
        else:
            _display_findings(result)
            if result.error:
                console.print(Text(result.error, style="red"))


def _display_result(result: BuildResult) -> None:
    """Display a build result in formatted tables."""
    topology_table = Table(title="Topology")
    topology_table.add_column("Entity", style="cyan")
    topology_table.add_column("Value", style="yellow")

    topology_table.add_row("Kind", str(result.kind))
    topology_table.add_row("Faces", str(result.face_count))
    if result.triangles:
        topology_table.add_row("Triangles", str(len(result.triangles)))
    console.print(topology_table)

    if result.bounding_box:
        bbox = result.bounding_box
        props_table = Table(title="Properties")
        props_table.add_column("Property", style="cyan")
        props_table.add_column("Value", style="white")
        bbox_str = (f"({bbox.min_x:.3f}, {bbox.min_y:.3f}, {bbox.min_z:.3f}) → "
                    f"({bbox.max_x:.3f}, {bbox.max_y:.3f}, {bbox.max_z:.3f})")
        props_table.add_row("Bounding Box", bbox_str)
        props_table.add_row("Box Volume", f"{bbox.volume:.3f}")
        console.print(props_table)


def _display_findings(result: BuildResult) -> None:
    if not result.findings:
        return
    table = Table(title="Validation Findings")
    table.add_column("Check", style="cyan")
    table.add_column("Message", style="white")
    table.add_column("Entities", style="yellow")
    for finding in result.findings:
        table.add_row(finding["kind"], finding["message"], ", ".join(finding["entities"]))
    console.print(table)


def _write_result(result: BuildResult, path: Path) -> None:
    if path.suffix.lower() == ".jsonl":
        dump_jsonl([result], path)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(to_json_string(result, pretty=True), encoding="utf-8")
    logger.debug("Wrote build result", path=str(path), ok=result.ok)


if __name__ == "__main__":
    app()
