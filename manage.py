#!/usr/bin/env python
"""Command line entry point for the GCH Healthcare backend (``gch.settings``)."""
import os
import sys


def main() -> None:
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gch.settings")
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError("Django is not importable; install the project first (pip install -e .)") from exc
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
