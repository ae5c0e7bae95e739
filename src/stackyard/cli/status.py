"""
CLI command listing the resources of the running environment.
"""

from __future__ import annotations

import json
from typing import Any

from stackyard.cli.ux import info, print_table, styled_status
from stackyard.config import get_settings, state_path
from stackyard.core.errors import ExitCode, StateNotFoundError, main_with_error_handling
from stackyard.resources import ResourceGraph, load_state

# Runtime fields worth showing in the table, in display order
DETAIL_FIELDS = ("container_id", "network_id", "api_port", "kubeconfig")


def _details(runtime: dict[str, Any]) -> str:
    parts = []
    for key in DETAIL_FIELDS:
        if key in runtime:
            value = str(runtime[key])
            if key.endswith("_id"):
                value = value[:12]
            parts.append(f"{key}={value}")
    return " ".join(parts)


def status_rows(graph: ResourceGraph) -> list[dict[str, Any]]:
    return [
        {
            "resource": resource.id,
            "type": resource.type.value,
            "name": resource.name,
            "status": resource.status.value,
            "error": resource.error,
            "runtime": resource.runtime,
        }
        for resource in graph
    ]


@main_with_error_handling()
def status_command(output_format: str = "text") -> int:
    """Show each resource with its status."""
    try:
        graph = load_state(state_path(get_settings()))
    except StateNotFoundError:
        if output_format == "json":
            print(json.dumps({"resources": []}, indent=2))
        else:
            info("No environment is running, start one with 'stackyard run <blueprint>'")
        return ExitCode.SUCCESS

    rows = status_rows(graph)
    if output_format == "json":
        print(json.dumps({"resources": rows}, indent=2, default=str))
        return ExitCode.SUCCESS

    print_table(
        "Resources",
        ["Resource", "Status", "Details"],
        [
            [
                row["resource"],
                styled_status(row["status"]),
                row["error"] or _details(row["runtime"]),
            ]
            for row in rows
        ],
    )
    return ExitCode.SUCCESS
