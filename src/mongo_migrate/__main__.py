"""Allow ``python -m mongo_migrate``."""

from mongo_migrate.cli.app import app

if __name__ == "__main__":
    app()
