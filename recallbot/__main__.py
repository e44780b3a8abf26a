"""Entry point for ``python -m recallbot``."""

from recallbot.cli.commands import app

if __name__ == "__main__":
    app()
