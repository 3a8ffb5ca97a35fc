"""
Lingua SRS

Flashcards for words, cloze sentences and characters, scheduled with
spaced repetition and stored in a local SQLite database.
"""
import logging

from . import scheduler
from . import structured
from . import db
from . import importer

__version__ = "0.1.0"
__all__ = ["scheduler", "structured", "db", "importer"]

if db.DEBUG_MODE:
    logging.getLogger(__name__).setLevel(logging.DEBUG)
