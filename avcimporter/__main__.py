"""Entry point for ``python -m avcimporter``."""

from avcimporter.cli import app

if __name__ == "__main__":
    app()
