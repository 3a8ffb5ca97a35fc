from __future__ import annotations

import datetime
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, TypeVar

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, create_engine, delete, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker
from sqlalchemy.types import TypeDecorator

from . import scheduler
from .scheduler import CharacterStage, MasteryLevel
from .structured import CharacterRow, ClozeRow, WordRow

logger = logging.getLogger(__name__)

DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

COURSE_KINDS = ("word", "cloze", "character")
CHARACTER_LANGUAGES = ("japanese", "chinese")
STATE_VERSION = 1
STATE_SECTIONS = ("courses", "words", "cloze_sentences", "characters")


class ItemNotFoundError(LookupError):
    pass


class DuplicateCourseError(ValueError):
    pass


class UTCDateTime(TypeDecorator):
    """Stores naive UTC in SQLite and hands back aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime.datetime], dialect: Any) -> Optional[datetime.datetime]:
        if value is None:
            return None
        return scheduler.as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime.datetime], dialect: Any) -> Optional[datetime.datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=datetime.timezone.utc)


class Base(DeclarativeBase):
    pass


DB_PATH: str = os.environ.get("LINGUA_SRS_DB", "lingua_srs.db")
engine: Engine = create_engine(f"sqlite:///{DB_PATH}")
# Keep returned records readable after their session closes
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class Course(Base):
    __tablename__ = "courses"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)  # word, cloze or character
    native_language: Mapped[Optional[str]] = mapped_column(String)
    target_language: Mapped[Optional[str]] = mapped_column(String)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, default=scheduler.utcnow)

    words: Mapped[List["Word"]] = relationship(back_populates="course", cascade="all, delete-orphan")
    cloze_sentences: Mapped[List["ClozeSentence"]] = relationship(back_populates="course", cascade="all, delete-orphan")
    characters: Mapped[List["Character"]] = relationship(back_populates="course", cascade="all, delete-orphan")


class Word(Base):
    __tablename__ = "words"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    native: Mapped[str] = mapped_column(String, nullable=False)
    target: Mapped[str] = mapped_column(String, nullable=False)
    pronunciation: Mapped[Optional[str]] = mapped_column(String)
    part_of_speech: Mapped[Optional[str]] = mapped_column(String)
    level: Mapped[int] = mapped_column(Integer, default=1)  # course level, not SRS level
    # SRS fields
    srs_level: Mapped[int] = mapped_column(Integer, default=0)
    mastery_level: Mapped[str] = mapped_column(String, default=MasteryLevel.SEED.value)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    wrong_count: Mapped[int] = mapped_column(Integer, default=0)
    next_review: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    last_reviewed: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    is_difficult: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, default=scheduler.utcnow)

    course: Mapped[Course] = relationship(back_populates="words")


class ClozeSentence(Base):
    __tablename__ = "cloze_sentences"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    native: Mapped[str] = mapped_column(Text, nullable=False)
    target: Mapped[str] = mapped_column(Text, nullable=False)
    cloze_text: Mapped[str] = mapped_column(Text, nullable=False)  # target with one token blanked
    answer: Mapped[str] = mapped_column(String, nullable=False)
    # SRS fields
    srs_level: Mapped[int] = mapped_column(Integer, default=0)
    mastery_level: Mapped[str] = mapped_column(String, default=MasteryLevel.SEED.value)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    wrong_count: Mapped[int] = mapped_column(Integer, default=0)
    next_review: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    last_reviewed: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    is_difficult: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, default=scheduler.utcnow)

    course: Mapped[Course] = relationship(back_populates="cloze_sentences")


class Character(Base):
    __tablename__ = "characters"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    character: Mapped[str] = mapped_column(String, nullable=False)
    meaning: Mapped[str] = mapped_column(Text, nullable=False)
    pronunciation: Mapped[Optional[str]] = mapped_column(String)
    language: Mapped[str] = mapped_column(String, default="japanese")
    level: Mapped[int] = mapped_column(Integer, default=1)  # 1-60
    # SRS fields
    srs_stage: Mapped[str] = mapped_column(String, default=CharacterStage.LOCKED.value)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    wrong_count: Mapped[int] = mapped_column(Integer, default=0)
    meaning_correct: Mapped[int] = mapped_column(Integer, default=0)
    meaning_wrong: Mapped[int] = mapped_column(Integer, default=0)
    reading_correct: Mapped[int] = mapped_column(Integer, default=0)
    reading_wrong: Mapped[int] = mapped_column(Integer, default=0)
    next_review: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    last_reviewed: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, default=scheduler.utcnow)

    course: Mapped[Course] = relationship(back_populates="characters")


ModelT = TypeVar("ModelT", bound=Base)


def configure(db_path: str) -> None:
    """Point the module-level engine and session factory at another SQLite file."""
    global DB_PATH, engine, SessionLocal
    DB_PATH = db_path
    engine = create_engine(f"sqlite:///{db_path}")
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    table_names = set(inspect(engine).get_table_names())
    return {"courses", "words", "cloze_sentences", "characters"}.issubset(table_names)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


def to_dict(record: Base) -> Dict[str, Any]:
    """Column values of a record, datetimes as ISO strings."""
    data: Dict[str, Any] = {}
    for column in record.__table__.columns:
        value = getattr(record, column.key)
        if isinstance(value, datetime.datetime):
            value = value.isoformat()
        data[column.key] = value
    return data


def _parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime.datetime):
        return scheduler.as_utc(value)
    if isinstance(value, (int, float)):
        # Millisecond epoch timestamps from browser exports
        return datetime.datetime.fromtimestamp(value / 1000, tz=datetime.timezone.utc)
    return scheduler.as_utc(datetime.datetime.fromisoformat(str(value)))


@dataclass
class AppState:
    courses: List[Course] = field(default_factory=list)
    words: List[Word] = field(default_factory=list)
    cloze_sentences: List[ClozeSentence] = field(default_factory=list)
    characters: List[Character] = field(default_factory=list)


class StudyRepository:
    """Persistence for courses and their study items.

    Construct once and hand it to whatever needs to read or write items. Every
    mutating method opens its own session, commits, and returns the stored
    record detached from the session.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        return get_session()

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def load(self) -> AppState:
        with self._session() as session:
            return AppState(
                courses=list(session.scalars(select(Course).order_by(Course.id))),
                words=list(session.scalars(select(Word).order_by(Word.id))),
                cloze_sentences=list(session.scalars(select(ClozeSentence).order_by(ClozeSentence.id))),
                characters=list(session.scalars(select(Character).order_by(Character.id))),
            )

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def add_course(self, name: str, kind: str, native_language: str = "",
                   target_language: str = "", description: str = "") -> Course:
        if kind not in COURSE_KINDS:
            raise ValueError(f"Unknown course kind {kind!r}, expected one of {COURSE_KINDS}")
        clean_name = name.strip()
        if not clean_name:
            raise ValueError("Course name must not be empty")
        with self._session() as session:
            existing = {n.lower().strip() for n in session.scalars(select(Course.name))}
            if clean_name.lower() in existing:
                raise DuplicateCourseError(
                    f'A course with the name "{clean_name}" already exists. Course names must be unique.'
                )
            course = Course(
                name=clean_name,
                kind=kind,
                native_language=native_language,
                target_language=target_language,
                description=description,
            )
            session.add(course)
            session.commit()
            session.refresh(course)
            logger.info("Created %s course %r (id=%s)", kind, clean_name, course.id)
            return course

    def get_course(self, course_id: int) -> Course:
        return self._get(Course, course_id)

    def list_courses(self) -> List[Course]:
        with self._session() as session:
            return list(session.scalars(select(Course).order_by(Course.id)))

    def delete_course(self, course_id: int) -> None:
        """Delete a course together with every item it owns."""
        with self._session() as session:
            course = session.get(Course, course_id)
            if course is None:
                raise ItemNotFoundError(f"Course {course_id} not found")
            session.delete(course)
            session.commit()
        logger.info("Deleted course %s and its items", course_id)

    # ------------------------------------------------------------------
    # Generic item helpers
    # ------------------------------------------------------------------
    def _get(self, model: Type[ModelT], item_id: int) -> ModelT:
        with self._session() as session:
            record = session.get(model, item_id)
            if record is None:
                raise ItemNotFoundError(f"{model.__name__} {item_id} not found")
            return record

    def _update(self, model: Type[ModelT], item_id: int, changes: Any) -> ModelT:
        if hasattr(changes, "as_changes"):
            changes = changes.as_changes()
        columns = set(model.__table__.columns.keys())
        unknown = set(changes) - columns
        if unknown or "id" in changes:
            raise ValueError(f"Cannot update {model.__name__} fields: {sorted(unknown | ({'id'} & set(changes)))}")
        with self._session() as session:
            record = session.get(model, item_id)
            if record is None:
                raise ItemNotFoundError(f"{model.__name__} {item_id} not found")
            for key, value in changes.items():
                setattr(record, key, value)
            session.commit()
            session.refresh(record)
            return record

    def _delete(self, model: Type[Base], item_id: int) -> None:
        with self._session() as session:
            record = session.get(model, item_id)
            if record is None:
                raise ItemNotFoundError(f"{model.__name__} {item_id} not found")
            session.delete(record)
            session.commit()

    def _course_items(self, model: Type[ModelT], course_id: int) -> List[ModelT]:
        with self._session() as session:
            stmt = select(model).where(model.course_id == course_id).order_by(model.id)  # type: ignore[attr-defined]
            return list(session.scalars(stmt))

    def _require_course(self, session: Session, course_id: int, kind: str) -> Course:
        course = session.get(Course, course_id)
        if course is None:
            raise ItemNotFoundError(f"Course {course_id} not found")
        if course.kind != kind:
            raise ValueError(f"Course {course_id} holds {course.kind} items, not {kind} items")
        return course

    # ------------------------------------------------------------------
    # Words
    # ------------------------------------------------------------------
    def add_words(self, course_id: int, rows: Iterable[WordRow]) -> int:
        with self._session() as session:
            self._require_course(session, course_id, "word")
            words = [
                Word(
                    course_id=course_id,
                    native=row.native,
                    target=row.target,
                    level=row.level,
                    part_of_speech=row.part_of_speech,
                    pronunciation=row.pronunciation,
                )
                for row in rows
            ]
            session.add_all(words)
            session.commit()
        logger.info("Added %d words to course %s", len(words), course_id)
        return len(words)

    def get_word(self, word_id: int) -> Word:
        return self._get(Word, word_id)

    def list_words(self, course_id: int) -> List[Word]:
        return self._course_items(Word, course_id)

    def update_word(self, word_id: int, changes: Any) -> Word:
        return self._update(Word, word_id, changes)

    def delete_word(self, word_id: int) -> None:
        self._delete(Word, word_id)

    def set_word_difficult(self, word_id: int, is_difficult: bool = True) -> Word:
        return self._update(Word, word_id, {"is_difficult": is_difficult})

    def review_word(self, word_id: int, correct: bool,
                    now: Optional[datetime.datetime] = None) -> Word:
        word = self.get_word(word_id)
        return self.update_word(word_id, scheduler.update_word_srs(word, correct, now=now))

    # ------------------------------------------------------------------
    # Cloze sentences
    # ------------------------------------------------------------------
    def add_cloze_sentences(self, course_id: int, rows: Iterable[ClozeRow]) -> int:
        with self._session() as session:
            self._require_course(session, course_id, "cloze")
            sentences = [
                ClozeSentence(
                    course_id=course_id,
                    native=row.native,
                    target=row.target,
                    cloze_text=row.cloze_text,
                    answer=row.answer,
                )
                for row in rows
            ]
            session.add_all(sentences)
            session.commit()
        logger.info("Added %d cloze sentences to course %s", len(sentences), course_id)
        return len(sentences)

    def get_cloze_sentence(self, sentence_id: int) -> ClozeSentence:
        return self._get(ClozeSentence, sentence_id)

    def list_cloze_sentences(self, course_id: int) -> List[ClozeSentence]:
        return self._course_items(ClozeSentence, course_id)

    def update_cloze_sentence(self, sentence_id: int, changes: Any) -> ClozeSentence:
        return self._update(ClozeSentence, sentence_id, changes)

    def delete_cloze_sentence(self, sentence_id: int) -> None:
        self._delete(ClozeSentence, sentence_id)

    def review_cloze(self, sentence_id: int, user_answer: str,
                     now: Optional[datetime.datetime] = None) -> tuple[ClozeSentence, bool]:
        """Grade a typed answer and store the result. Returns (sentence, correct)."""
        sentence = self.get_cloze_sentence(sentence_id)
        correct = scheduler.check_cloze_answer(sentence, user_answer)
        updated = self.update_cloze_sentence(sentence_id, scheduler.update_cloze_srs(sentence, correct, now=now))
        return updated, correct

    def set_cloze_difficult(self, sentence_id: int, is_difficult: bool = True) -> ClozeSentence:
        return self._update(ClozeSentence, sentence_id, {"is_difficult": is_difficult})

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------
    def add_characters(self, course_id: int, rows: Iterable[CharacterRow],
                       language: Optional[str] = None) -> int:
        with self._session() as session:
            course = self._require_course(session, course_id, "character")
            language = (language or course.target_language or "japanese").lower()
            if language not in CHARACTER_LANGUAGES:
                raise ValueError(f"Unsupported character language {language!r}")
            characters = [
                Character(
                    course_id=course_id,
                    character=row.character,
                    meaning=row.meaning,
                    pronunciation=row.pronunciation,
                    language=language,
                    level=row.level,
                )
                for row in rows
            ]
            session.add_all(characters)
            session.commit()
        logger.info("Added %d characters to course %s", len(characters), course_id)
        return len(characters)

    def get_character(self, character_id: int) -> Character:
        return self._get(Character, character_id)

    def list_characters(self, course_id: int) -> List[Character]:
        return self._course_items(Character, course_id)

    def update_character(self, character_id: int, changes: Any) -> Character:
        return self._update(Character, character_id, changes)

    def delete_character(self, character_id: int) -> None:
        self._delete(Character, character_id)

    def review_character(self, character_id: int, meaning_correct: bool, reading_correct: bool,
                         now: Optional[datetime.datetime] = None) -> Character:
        character = self.get_character(character_id)
        result = scheduler.update_character_srs(character, meaning_correct, reading_correct, now=now)
        return self.update_character(character_id, result)

    def unlock_characters(self, course_id: int, now: Optional[datetime.datetime] = None) -> List[Character]:
        """Unlock every locked character whose level is open. Returns the unlocked ones."""
        candidates = scheduler.get_unlockable_characters(self.list_characters(course_id))
        unlocked = [
            self.update_character(c.id, scheduler.unlock_character(c, now=now))
            for c in candidates
        ]
        if unlocked:
            logger.info("Unlocked %d characters in course %s", len(unlocked), course_id)
        return unlocked

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------
    def due_words(self, course_id: int, now: Optional[datetime.datetime] = None) -> List[Word]:
        return scheduler.get_words_due_for_review(self.list_words(course_id), now=now)

    def due_cloze_sentences(self, course_id: int, now: Optional[datetime.datetime] = None) -> List[ClozeSentence]:
        return scheduler.get_cloze_sentences_due_for_review(self.list_cloze_sentences(course_id), now=now)

    def due_characters(self, course_id: int, now: Optional[datetime.datetime] = None) -> List[Character]:
        return scheduler.get_characters_due_for_review(self.list_characters(course_id), now=now)

    def due_items(self, course_id: int, now: Optional[datetime.datetime] = None) -> List[Any]:
        kind = self.get_course(course_id).kind
        if kind == "word":
            return self.due_words(course_id, now=now)
        if kind == "cloze":
            return self.due_cloze_sentences(course_id, now=now)
        return self.due_characters(course_id, now=now)

    def _practice_pool(self, course_id: int) -> List[Any]:
        kind = self.get_course(course_id).kind
        if kind == "word":
            return self.list_words(course_id)
        if kind == "cloze":
            return self.list_cloze_sentences(course_id)
        raise ValueError(f"Course {course_id} holds characters; practice pools cover words and cloze sentences")

    def difficult_items(self, course_id: int) -> List[Any]:
        """Flagged items plus those missed more often than answered, regardless of schedule."""
        return scheduler.get_difficult_items(self._practice_pool(course_id))

    def new_items(self, course_id: int) -> List[Any]:
        """Items still in the seed band."""
        return scheduler.get_new_cloze_sentences(self._practice_pool(course_id))

    def next_due_item(self, course_id: int, exclude_id: Optional[int] = None,
                      now: Optional[datetime.datetime] = None) -> Optional[Any]:
        """Oldest due item of a course; never-reviewed items come first."""
        due = [item for item in self.due_items(course_id, now=now) if item.id != exclude_id]
        if not due:
            return None
        epoch = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)
        return min(due, key=lambda item: (item.next_review or epoch, item.id))

    # ------------------------------------------------------------------
    # Progress and maintenance
    # ------------------------------------------------------------------
    def course_progress(self, course_id: int, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
        course = self.get_course(course_id)
        progress: Dict[str, Any] = {"course_id": course.id, "name": course.name, "kind": course.kind}
        if course.kind == "character":
            characters = self.list_characters(course_id)
            stages = [scheduler.parse_character_stage(c.srs_stage) for c in characters]
            progress["stages"] = {s.value: stages.count(s) for s in CharacterStage}
            progress["total"] = len(characters)
            progress["learned"] = sum(1 for s in stages if s >= CharacterStage.GURU)
            progress["mastered"] = stages.count(CharacterStage.BURNED)
            progress["due"] = len(scheduler.get_characters_due_for_review(characters, now=now))
            return progress

        items: List[Any]
        if course.kind == "word":
            items = self.list_words(course_id)
            due = scheduler.get_words_due_for_review(items, now=now)
        else:
            items = self.list_cloze_sentences(course_id)
            due = scheduler.get_cloze_sentences_due_for_review(items, now=now)
        bands = [scheduler.get_mastery_level(i.srs_level) for i in items]
        progress["bands"] = {b.value: bands.count(b) for b in MasteryLevel}
        progress["total"] = len(items)
        progress["learned"] = sum(1 for i in items if i.srs_level > 0)
        progress["mastered"] = bands.count(MasteryLevel.TREE)
        progress["due"] = len(due)
        progress["difficult"] = len(scheduler.get_difficult_items(items))
        return progress

    def remove_duplicate_words(self, course_id: Optional[int] = None) -> int:
        """Drop words repeating another word's native and target text in the same course."""
        with self._session() as session:
            stmt = select(Word).order_by(Word.id)
            if course_id is not None:
                stmt = stmt.where(Word.course_id == course_id)
            seen = set()
            to_delete = []
            for word in session.scalars(stmt):
                key = (word.course_id, word.native.strip().lower(), word.target.strip().lower())
                if key in seen:
                    to_delete.append(word)
                else:
                    seen.add(key)
            for word in to_delete:
                logger.debug("Deleting duplicate word %s (%s / %s)", word.id, word.native, word.target)
                session.delete(word)
            session.commit()
        logger.info("Removed %d duplicate words", len(to_delete))
        return len(to_delete)

    def export_state(self) -> Dict[str, Any]:
        """The whole store as one JSON-serializable blob."""
        state = self.load()
        return {
            "version": STATE_VERSION,
            "courses": [to_dict(c) for c in state.courses],
            "words": [to_dict(w) for w in state.words],
            "cloze_sentences": [to_dict(s) for s in state.cloze_sentences],
            "characters": [to_dict(c) for c in state.characters],
        }

    def import_state(self, blob: Mapping[str, Any]) -> AppState:
        """Replace the whole store with a previously exported blob.

        Stage and band names are normalized on the way in, so backups written
        with the older plant-style character stages still load.
        """
        sections = _check_state_blob(blob)
        with self._session() as session:
            try:
                for model in (Word, ClozeSentence, Character, Course):
                    session.execute(delete(model))

                for data in sections["courses"]:
                    session.add(_build(Course, data))
                session.flush()
                for data in sections["words"]:
                    record = _build(Word, data)
                    record.mastery_level = scheduler.get_mastery_level(record.srs_level or 0).value
                    session.add(record)
                for data in sections["cloze_sentences"]:
                    record = _build(ClozeSentence, data)
                    record.mastery_level = scheduler.get_mastery_level(record.srs_level or 0).value
                    session.add(record)
                for data in sections["characters"]:
                    record = _build(Character, data)
                    record.srs_stage = scheduler.parse_character_stage(data.get("srs_stage")).value
                    session.add(record)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ValueError(f"Backup contains incomplete records: {e.orig}") from e
        logger.info("Restored state from backup (version %s)", blob.get("version", "?"))
        return self.load()


def _check_state_blob(blob: Any) -> Dict[str, List[Mapping[str, Any]]]:
    """Validate the backup's shape before anything is deleted."""
    if not isinstance(blob, Mapping):
        raise ValueError(f"Backup must be a JSON object, got {type(blob).__name__}")
    sections: Dict[str, List[Mapping[str, Any]]] = {}
    for name in STATE_SECTIONS:
        records = blob.get(name, [])
        if not isinstance(records, list) or not all(isinstance(r, Mapping) for r in records):
            raise ValueError(f"Backup section {name!r} must be a list of objects")
        sections[name] = records
    return sections


def _build(model: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    values: Dict[str, Any] = {}
    for column in model.__table__.columns:
        if column.key not in data:
            continue
        value = data[column.key]
        if isinstance(column.type, UTCDateTime):
            value = _parse_timestamp(value)
        values[column.key] = value
    return model(**values)


__all__ = [
    "Base", "Course", "Word", "ClozeSentence", "Character",
    "AppState", "StudyRepository", "ItemNotFoundError", "DuplicateCourseError",
    "configure", "init_db", "is_db_initialized", "get_session", "to_dict",
]
