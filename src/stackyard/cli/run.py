"""
CLI command creating the resources of a blueprint.
"""

from __future__ import annotations

import json

from stackyard.cli.ux import console, error, header, success, warning
from stackyard.config import get_settings, state_path
from stackyard.core.errors import ExitCode, StateNotFoundError, main_with_error_handling
from stackyard.orchestration import Engine, RunResult
from stackyard.providers import build_context, create_default_registry
from stackyard.resources import load_blueprint, load_state, merge_state


def print_run_summary(result: RunResult) -> None:
    """Print a per-resource summary of a pass."""
    header(f"stackyard {result.action}")
    for identifier in result.created:
        console.print(f"  [green]✓ {identifier:<32}[/green] created")
    for identifier in result.skipped:
        console.print(f"  [dim]• {identifier:<32}[/dim] skipped")
    for identifier in result.destroyed:
        console.print(f"  [green]✓ {identifier:<32}[/green] destroyed")
    for identifier, cause in result.failed.items():
        console.print(f"  [red]✗ {identifier:<32}[/red] {cause}")

    console.print()
    duration = f" in {result.duration_seconds:.1f}s"
    if result.success:
        success(
            f"{result.action.capitalize()} finished for {result.total_resources} "
            f"resources{duration}"
        )
    else:
        warning(
            f"{result.action.capitalize()} finished with {len(result.failed)} failed "
            f"resources{duration}"
        )


def print_run_json(result: RunResult) -> None:
    print(json.dumps(result.to_dict(), indent=2))


@main_with_error_handling()
def run_command(
    blueprint: str,
    max_workers: int | None = None,
    output_format: str = "text",
) -> int:
    """
    Create every resource declared by a blueprint.

    Resources recorded as created by a previous run are skipped, so running
    the same blueprint again only retries what failed.

    Returns:
        Exit code (0 when every resource was created, 1 otherwise)
    """
    settings = get_settings()
    path = state_path(settings)

    graph = load_blueprint(blueprint)
    try:
        graph = merge_state(graph, load_state(path))
    except StateNotFoundError:
        pass

    engine = Engine(
        create_default_registry(),
        build_context(settings),
        path,
        max_workers=max_workers or settings.max_workers,
    )
    result = engine.create(graph)

    if output_format == "json":
        print_run_json(result)
    else:
        print_run_summary(result)
        if not result.success:
            error("Run 'stackyard destroy' to remove the partially created environment")

    return ExitCode.SUCCESS if result.success else ExitCode.WARNING
