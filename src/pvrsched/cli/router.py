"""
CLI Router: Centralized command group registration.

Each command group is a Typer app that handles its own subcommands and
arguments; the router attaches them to the root application and refuses to
register the same group name twice.
"""

from __future__ import annotations

from typing import Any

import typer


class CliRouter:
    """
    Centralized router for CLI command groups.

    Provides explicit registration of command groups.
    """

    def __init__(self, root_app: typer.Typer) -> None:
        """
        Initialize the router with a root Typer application.

        Args:
            root_app: The root Typer application that will receive registered commands
        """
        self.root_app = root_app
        self._registered_groups: dict[str, dict[str, Any]] = {}

    def register(
        self,
        name: str,
        command_group: typer.Typer,
        *,
        help_text: str | None = None,
    ) -> None:
        """
        Register a command group with the router.

        Args:
            name: Command group name (e.g., "recording")
            command_group: Typer app instance for this command group
            help_text: Help text for the command group
        """
        if name in self._registered_groups:
            raise ValueError(f"Command group '{name}' is already registered")

        self.root_app.add_typer(command_group, name=name, help=help_text)

        self._registered_groups[name] = {
            "name": name,
            "help": help_text,
            "command_group": command_group,
        }


# Global router instance
_router: CliRouter | None = None


def get_router(root_app: typer.Typer) -> CliRouter:
    """
    Get or create the global CLI router instance.

    Args:
        root_app: The root Typer application

    Returns:
        CliRouter instance
    """
    global _router
    if _router is None:
        _router = CliRouter(root_app)
    return _router
