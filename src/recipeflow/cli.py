"""Command-line interface for the recipeflow analyses."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="recipeflow",
    help="Recipe-based preprocessing and model comparison for tabular analyses.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]


@app.callback()
def main(
    log_level: Annotated[
        str, typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING).")
    ] = "INFO",
    json_logs: Annotated[
        bool, typer.Option("--json-logs", help="Emit log events as JSON lines.")
    ] = False,
) -> None:
    """Configure logging for every command."""
    from recipeflow.utils.logging import configure_logging

    configure_logging(level=log_level, json_output=json_logs)


@app.command()
def run(
    config: ConfigOption,
    no_report: Annotated[
        bool, typer.Option("--no-report", help="Skip writing the HTML report.")
    ] = False,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Recompute results even if a cache exists."),
    ] = False,
    jobs: Annotated[
        int | None,
        typer.Option("--jobs", "-j", help="Worker processes (-1 = all cores)."),
    ] = None,
) -> None:
    """Run the full analysis described by a configuration file."""
    from pandera.errors import SchemaError, SchemaErrors

    from recipeflow.analyses import get_analysis
    from recipeflow.config.loader import load_config
    from recipeflow.utils.logging import log_context

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    try:
        analysis_config = load_config(config)
        if jobs is not None:
            analysis_config = analysis_config.model_copy(
                update={
                    "parallel": analysis_config.parallel.model_copy(
                        update={"n_jobs": jobs}
                    )
                }
            )
        analysis = get_analysis(analysis_config.analysis)

        console.print(
            f"[blue]Running {analysis.name.value} analysis "
            f"for project {analysis_config.project}[/blue]"
        )
        console.print(f"[dim]{analysis.description}[/dim]")
        with log_context(
            analysis=analysis.name.value, project=analysis_config.project
        ):
            result = analysis.run(
                analysis_config,
                render=not no_report,
                use_cache=not no_cache,
                console=console,
            )
    except (FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e
    except (SchemaError, SchemaErrors) as e:
        console.print(f"[red]Data validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    if result.report_path:
        console.print(f"\n[green]Report: {result.report_path}[/green]")
    if result.model_path:
        console.print(f"[green]Model: {result.model_path}[/green]")
    if result.mlflow_run_id:
        console.print(f"[dim]MLflow run: {result.mlflow_run_id}[/dim]")


@app.command()
def explore(config: ConfigOption) -> None:
    """Save the exploratory plots of an analysis."""
    from pandera.errors import SchemaError, SchemaErrors

    from recipeflow.analyses import get_analysis
    from recipeflow.analyses.base import save_plots
    from recipeflow.config.loader import load_config

    try:
        analysis_config = load_config(config)
        analysis = get_analysis(analysis_config.analysis)
        paths = save_plots(analysis_config, analysis.explore(analysis_config))
    except (FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e
    except (SchemaError, SchemaErrors) as e:
        console.print(f"[red]Data validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Exploratory plots ({analysis.name.value})")
    table.add_column("Plot", style="cyan")
    table.add_column("Path", style="green")
    for name, path in paths.items():
        table.add_row(name, str(path))
    console.print(table)


@app.command()
def validate(config: ConfigOption) -> None:
    """Validate every configured CSV file against its schema."""
    from pandera.errors import SchemaError, SchemaErrors

    from recipeflow.config.loader import load_config
    from recipeflow.ingestion import LOADERS

    try:
        analysis_config = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title="Data validation")
    table.add_column("Dataset", style="cyan")
    table.add_column("Rows")
    table.add_column("Status")

    failed = False
    for key in analysis_config.data.files:
        if key not in LOADERS:
            table.add_row(key, "-", "[yellow]no schema[/yellow]")
            continue
        try:
            df = LOADERS[key](analysis_config).load(validate=True)
        except FileNotFoundError as e:
            table.add_row(key, "-", f"[red]missing: {e}[/red]")
            failed = True
        except (SchemaError, SchemaErrors) as e:
            table.add_row(key, "-", f"[red]invalid: {e}[/red]")
            failed = True
        else:
            table.add_row(key, str(len(df)), "[green]ok[/green]")

    console.print(table)
    if failed:
        raise typer.Exit(code=1)


@app.command()
def models() -> None:
    """List registered models and their default tuning parameters."""
    from recipeflow.modeling.models import get_param_grid, list_models

    table = Table(title="Registered models")
    table.add_column("Mode", style="cyan")
    table.add_column("Model", style="green")
    table.add_column("Tuning parameters")
    for mode, names in list_models().items():
        for name in names:
            grid = get_param_grid(name, mode) or {}
            table.add_row(mode, name, ", ".join(grid) or "-")
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from recipeflow import __version__

    console.print(f"recipeflow version {__version__}")


if __name__ == "__main__":
    app()
