"""indexwatch CLI — Typer-based command-line interface.

Provides the ``indexwatch`` command with subcommands for live watching,
address lookup and a one-shot health check.

All output uses Rich for formatted terminal display.
"""
