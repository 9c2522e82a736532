#!/usr/bin/env python3
"""
Show the effective configuration
"""
from rich.console import Console
from rich.tree import Tree

from ..settings import get_settings


def show_config(format: str = "tree", console: Console = None):
    """Display current configuration"""
    console = console or Console()
    settings = get_settings()

    if format == "json":
        console.print_json(data=settings.get_safe_dict())
        return

    tree = Tree(f"[bold blue]{settings.app_name} {settings.app_version}[/bold blue]")
    for section, values in settings.get_safe_dict().items():
        if not isinstance(values, dict):
            continue
        branch = tree.add(f"[cyan]{section}[/cyan]")
        for key, value in values.items():
            branch.add(f"{key}: {value}")
    console.print(tree)
