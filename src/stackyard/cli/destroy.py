"""
CLI command tearing down the running environment.
"""

from __future__ import annotations

from stackyard.cli.run import print_run_json, print_run_summary
from stackyard.cli.ux import confirm, info, is_interactive
from stackyard.config import get_settings, state_path
from stackyard.core.errors import ExitCode, StateNotFoundError, main_with_error_handling
from stackyard.orchestration import Engine
from stackyard.providers import build_context, create_default_registry
from stackyard.resources import load_state


@main_with_error_handling()
def destroy_command(
    yes: bool = False,
    max_workers: int | None = None,
    output_format: str = "text",
) -> int:
    """
    Destroy every resource recorded in the state file.

    Destroying when nothing is running is not an error.
    """
    settings = get_settings()
    path = state_path(settings)

    try:
        graph = load_state(path)
    except StateNotFoundError:
        info("No environment is running")
        return ExitCode.SUCCESS

    if not yes and is_interactive():
        if not confirm(f"Destroy {len(graph)} resources?", default=True):
            info("Aborted")
            return ExitCode.SUCCESS

    engine = Engine(
        create_default_registry(),
        build_context(settings),
        path,
        max_workers=max_workers or settings.max_workers,
    )
    result = engine.destroy(graph)

    if output_format == "json":
        print_run_json(result)
    else:
        print_run_summary(result)

    return ExitCode.SUCCESS if result.success else ExitCode.WARNING
