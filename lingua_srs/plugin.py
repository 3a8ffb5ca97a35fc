import json
import re
from typing import Any, List, Optional

import click

from . import db, importer
from .scheduler import LockedItemError

try:
    import llm  # type: ignore
    hookimpl = llm.hookimpl  # type: ignore
except ImportError:
    import pluggy
    hookimpl = pluggy.HookimplMarker("llm")

EMPTY_POOL_MESSAGES = {
    "due": "No items due for review!",
    "difficult": "No difficult items!",
    "new": "No new items!",
}


def _alternatives(expected: Optional[str]) -> List[str]:
    return [part.strip().lower() for part in re.split(r"[,;/]", expected or "") if part.strip()]


def answer_matches(answer: str, expected: Optional[str]) -> bool:
    """Case-insensitive match against any of the comma/semicolon/slash separated answers."""
    return answer.strip().lower() in _alternatives(expected)


def _repository() -> db.StudyRepository:
    if not db.is_db_initialized():
        db.init_db()
    return db.StudyRepository()


def _describe(item: Any) -> str:
    if isinstance(item, db.Word):
        return f"[{item.id}] {item.native} = {item.target} (level {item.srs_level}, {item.mastery_level})"
    if isinstance(item, db.ClozeSentence):
        return f"[{item.id}] {item.cloze_text} ({item.mastery_level})"
    return f"[{item.id}] {item.character} {item.meaning} ({item.srs_stage})"


def _review_one(repo: db.StudyRepository, item: Any) -> bool:
    if isinstance(item, db.Word):
        click.echo(f"\n{item.native}")
        answer = click.prompt("Translation", type=str)
        correct = answer_matches(answer, item.target)
        updated = repo.review_word(item.id, correct)
        expected = item.target
        status = f"level {updated.srs_level} ({updated.mastery_level})"
    elif isinstance(item, db.ClozeSentence):
        click.echo(f"\n{item.cloze_text}")
        click.echo(f"  {item.native}")
        answer = click.prompt("Missing word", type=str)
        updated_sentence, correct = repo.review_cloze(item.id, answer)
        expected = item.answer
        status = f"level {updated_sentence.srs_level} ({updated_sentence.mastery_level})"
    else:
        click.echo(f"\n{item.character}")
        meaning = click.prompt("Meaning", type=str)
        meaning_ok = answer_matches(meaning, item.meaning)
        if item.pronunciation:
            reading = click.prompt("Reading", type=str)
            reading_ok = answer_matches(reading, item.pronunciation)
            expected = f"{item.meaning} / {item.pronunciation}"
        else:
            # Nothing to ask; the reading axis follows the meaning
            reading_ok = meaning_ok
            expected = item.meaning
        updated_character = repo.review_character(item.id, meaning_ok, reading_ok)
        correct = meaning_ok and reading_ok
        status = f"stage {updated_character.srs_stage}"

    if correct:
        click.echo(f"✅ Correct, now {status}")
    else:
        click.echo(f"❌ Expected: {expected}, now {status}")
    return correct


@hookimpl  # type: ignore[misc]
def register_commands(cli: Any) -> None:

    @cli.command("init-db")  # type: ignore[misc]
    def init_db() -> None:
        """Initialize the study database."""
        db.init_db()
        click.echo("Database initialized.")

    @cli.command("create-course")  # type: ignore[misc]
    @click.argument("name")
    @click.option("--kind", type=click.Choice(db.COURSE_KINDS), default="word", help="Kind of items the course holds")
    @click.option("--native", "native_language", default="", help="Learner's language")
    @click.option("--target", "target_language", default="", help="Language being learned")
    @click.option("--description", default="", help="Free-form description")
    def create_course(name: str, kind: str, native_language: str, target_language: str, description: str) -> None:
        """Create an empty course."""
        try:
            course = _repository().add_course(name, kind, native_language, target_language, description)
        except ValueError as e:
            raise click.ClickException(str(e))
        click.echo(f"Course '{course.name}' created with id {course.id}.")

    @cli.command("courses")  # type: ignore[misc]
    def list_courses() -> None:
        """List all courses."""
        courses = _repository().list_courses()
        if not courses:
            click.echo("No courses yet.")
        for course in courses:
            click.echo(f"{course.id}\t{course.kind}\t{course.name}")

    @cli.command("delete-course")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    @click.confirmation_option(prompt="Delete the course and all of its items?")
    def delete_course(course_id: int) -> None:
        """Delete a course and every item in it."""
        try:
            _repository().delete_course(course_id)
        except db.ItemNotFoundError as e:
            raise click.ClickException(str(e))
        click.echo(f"Course {course_id} deleted.")

    @cli.command("import-words")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--native-col", default="native", help="Column with the learner's language")
    @click.option("--target-col", default="target", help="Column with the language being learned")
    @click.option("--level-col", default=None, help="Column with the course level")
    @click.option("--delimiter", default=None, help="comma, semicolon, tab or a literal character")
    def import_words(course_id: int, path: str, native_col: str, target_col: str,
                     level_col: Optional[str], delimiter: Optional[str]) -> None:
        """Import words from a CSV/TSV file."""
        try:
            rows = importer.words_from_rows(importer.read_rows(path, delimiter), native_col, target_col, level_col)
            count = _repository().add_words(course_id, rows)
        except (ValueError, LookupError) as e:
            raise click.ClickException(str(e))
        click.echo(f"Imported {count} words.")

    @cli.command("import-cloze")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--delimiter", default=None, help="comma, semicolon, tab or a literal character")
    def import_cloze(course_id: int, path: str, delimiter: Optional[str]) -> None:
        """Import sentence pairs and blank one word of each."""
        try:
            rows = importer.cloze_from_rows(importer.read_rows(path, delimiter))
            count = _repository().add_cloze_sentences(course_id, rows)
        except (ValueError, LookupError) as e:
            raise click.ClickException(str(e))
        click.echo(f"Imported {count} cloze sentences.")

    @cli.command("import-characters")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--language", type=click.Choice(db.CHARACTER_LANGUAGES), default=None,
                  help="Defaults to the course's target language")
    @click.option("--delimiter", default=None, help="comma, semicolon, tab or a literal character")
    def import_characters(course_id: int, path: str, language: Optional[str], delimiter: Optional[str]) -> None:
        """Import characters; they start locked."""
        try:
            rows = importer.characters_from_rows(importer.read_rows(path, delimiter))
            count = _repository().add_characters(course_id, rows, language=language)
        except (ValueError, LookupError) as e:
            raise click.ClickException(str(e))
        click.echo(f"Imported {count} characters (locked until unlocked).")

    @cli.command("unlock")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    def unlock(course_id: int) -> None:
        """Unlock characters whose level prerequisites are met."""
        repo = _repository()
        try:
            repo.get_course(course_id)
        except db.ItemNotFoundError as e:
            raise click.ClickException(str(e))
        unlocked = repo.unlock_characters(course_id)
        click.echo(f"Unlocked {len(unlocked)} characters.")

    @cli.command("due")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    def due(course_id: int) -> None:
        """List the items of a course that are due now."""
        try:
            items = _repository().due_items(course_id)
        except db.ItemNotFoundError as e:
            raise click.ClickException(str(e))
        click.echo(f"{len(items)} items due.")
        for item in items:
            click.echo(_describe(item))

    @cli.command("review")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    @click.option("--limit", type=int, default=20, help="Maximum number of questions")
    @click.option("--due", "pool", flag_value="due", default=True, help="Items due now (default)")
    @click.option("--difficult", "pool", flag_value="difficult",
                  help="Practice difficult words or sentences, due or not")
    @click.option("--new", "pool", flag_value="new", help="Practice items still in the seed band")
    def review(course_id: int, limit: int, pool: str) -> None:
        """Run an interactive review session over due, difficult or new items."""
        repo = _repository()
        asked = correct = 0
        last_id: Optional[int] = None
        try:
            if pool == "due":
                while asked < limit:
                    item = repo.next_due_item(course_id, exclude_id=last_id)
                    if item is None:
                        break
                    correct += _review_one(repo, item)
                    asked += 1
                    last_id = item.id
            else:
                items = repo.difficult_items(course_id) if pool == "difficult" else repo.new_items(course_id)
                for item in items[:limit]:
                    correct += _review_one(repo, item)
                    asked += 1
        except (db.ItemNotFoundError, LockedItemError, ValueError) as e:
            raise click.ClickException(str(e))
        if asked == 0:
            click.echo(EMPTY_POOL_MESSAGES[pool])
        else:
            click.echo(f"\nSession finished: {correct}/{asked} correct.")

    @cli.command("mark-difficult")  # type: ignore[misc]
    @click.argument("item_id", type=int)
    @click.option("--cloze", is_flag=True, help="ITEM_ID is a cloze sentence rather than a word")
    @click.option("--clear", is_flag=True, help="Remove the difficult flag instead")
    def mark_difficult(item_id: int, cloze: bool, clear: bool) -> None:
        """Flag a word (or cloze sentence) for difficult-item practice."""
        repo = _repository()
        try:
            if cloze:
                item: Any = repo.set_cloze_difficult(item_id, not clear)
            else:
                item = repo.set_word_difficult(item_id, not clear)
        except db.ItemNotFoundError as e:
            raise click.ClickException(str(e))
        click.echo(f"{_describe(item)} {'unmarked' if clear else 'marked'} as difficult.")

    @cli.command("progress")  # type: ignore[misc]
    @click.argument("course_id", type=int)
    def progress(course_id: int) -> None:
        """Show mastery counts for a course."""
        try:
            stats = _repository().course_progress(course_id)
        except db.ItemNotFoundError as e:
            raise click.ClickException(str(e))
        click.echo(f"{stats['name']} ({stats['kind']}): {stats['total']} items, "
                   f"{stats['learned']} learned, {stats['mastered']} mastered, {stats['due']} due")
        for name, count in stats.get("bands", stats.get("stages", {})).items():
            click.echo(f"  {name}: {count}")

    @cli.command("dedupe")  # type: ignore[misc]
    @click.option("--course", "course_id", type=int, default=None, help="Limit to one course")
    def dedupe(course_id: Optional[int]) -> None:
        """Remove duplicate words (same native and target text in a course)."""
        removed = _repository().remove_duplicate_words(course_id)
        click.echo(f"Removed {removed} duplicate words.")

    @cli.command("export")  # type: ignore[misc]
    @click.argument("path", type=click.Path(dir_okay=False, writable=True))
    def export(path: str) -> None:
        """Write a JSON backup of every course and item."""
        state = _repository().export_state()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(state, f, ensure_ascii=False, indent=2)
        click.echo(f"Exported {len(state['courses'])} courses to {path}.")

    @cli.command("restore")  # type: ignore[misc]
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.confirmation_option(prompt="Replace all current data with the backup?")
    def restore(path: str) -> None:
        """Replace the database contents with a JSON backup."""
        with open(path, "r", encoding="utf-8") as f:
            try:
                blob = json.load(f)
            except json.JSONDecodeError as e:
                raise click.ClickException(f"Invalid backup file: {e}")
        try:
            state = _repository().import_state(blob)
        except ValueError as e:
            raise click.ClickException(f"Invalid backup file: {e}")
        click.echo(f"Restored {len(state.courses)} courses.")
