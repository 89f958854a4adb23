#!/usr/bin/env python
"""
Entry point for the Django project. It sets the default settings module
to ``labtech.settings`` and delegates to Django's management command line
utility. ``runserver`` without an address listens on ``$PORT``.
"""
import os
import sys


def main() -> None:
    """Run administrative tasks for the Django project."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'labtech.settings')
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc
    argv = list(sys.argv)
    if len(argv) == 2 and argv[1] == 'runserver':
        from django.conf import settings

        argv.append(f"0.0.0.0:{settings.PORT}")
    execute_from_command_line(argv)


if __name__ == '__main__':
    main()
