"""Automated Clockify time entries with gap backfilling."""

from clockify_auto import logging_setup  # noqa: F401  installs the TRACE level

__all__ = [
    "main",
    "__version__",
]

__version__ = "1.0.0"


def main():
    from clockify_auto.cli import main as cli_main
    cli_main()
