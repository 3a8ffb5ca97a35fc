"""Standalone ``lingua`` command; the same commands load into ``llm`` as a plugin."""
from typing import Optional

import click

from . import db
from .plugin import register_commands


@click.group()
@click.option("--db", "db_path", envvar="LINGUA_SRS_DB", default=None,
              help="SQLite database file (default: $LINGUA_SRS_DB or lingua_srs.db)")
def cli(db_path: Optional[str]) -> None:
    """Spaced repetition flashcards for words, cloze sentences and characters."""
    if db_path:
        db.configure(db_path)


register_commands(cli)


if __name__ == "__main__":
    cli()
