"""
Entry point for running Letter River i18n as a module.

Usage:
    python -m letterriver_i18n --help
    python -m letterriver_i18n sync fr
    python -m letterriver_i18n generate --backend google --dry-run
"""
from .cli import app


if __name__ == "__main__":
    app()
