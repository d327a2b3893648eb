"""Entry point for ``python -m noctum_installer``."""

from noctum_installer.cli.commands import app

if __name__ == "__main__":
    app()
