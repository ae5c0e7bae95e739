"""
CLI commands for Stackyard.
"""

from stackyard.cli.destroy import destroy_command
from stackyard.cli.exec import exec_command
from stackyard.cli.run import run_command
from stackyard.cli.status import status_command

__all__ = [
    "destroy_command",
    "exec_command",
    "run_command",
    "status_command",
]
