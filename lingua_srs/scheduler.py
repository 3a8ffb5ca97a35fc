import datetime
import enum
import functools
import logging
from typing import Any, Dict, Iterable, List, Optional, TypeVar

from .structured import CharacterReview, ClozeReview, WordReview

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_LEVEL = 0
MAX_LEVEL = 9


class LockedItemError(ValueError):
    """Raised when a locked character is answered before it was unlocked."""


@functools.total_ordering
class MasteryLevel(enum.Enum):
    """Display band for words and cloze sentences, ordered seed < ... < tree."""

    SEED = "seed"
    SPROUT = "sprout"
    SEEDLING = "seedling"
    PLANT = "plant"
    TREE = "tree"

    @property
    def rank(self) -> int:
        return _MASTERY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank < other.rank


_MASTERY_ORDER = list(MasteryLevel)


@functools.total_ordering
class CharacterStage(enum.Enum):
    """WaniKani-style ladder for characters."""

    LOCKED = "locked"
    APPRENTICE = "apprentice"
    GURU = "guru"
    MASTER = "master"
    ENLIGHTENED = "enlightened"
    BURNED = "burned"

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CharacterStage):
            return NotImplemented
        return self.rank < other.rank


_STAGE_ORDER = list(CharacterStage)


# Upper level (inclusive) of each band; the last band ends at MAX_LEVEL.
MASTERY_BANDS = (
    (0, MasteryLevel.SEED),
    (2, MasteryLevel.SPROUT),
    (5, MasteryLevel.SEEDLING),
    (8, MasteryLevel.PLANT),
    (MAX_LEVEL, MasteryLevel.TREE),
)

WORD_INTERVALS: Dict[int, datetime.timedelta] = {
    0: datetime.timedelta(0),
    1: datetime.timedelta(hours=4),
    2: datetime.timedelta(hours=8),
    3: datetime.timedelta(days=1),
    4: datetime.timedelta(days=2),
    5: datetime.timedelta(days=4),
    6: datetime.timedelta(weeks=1),
    7: datetime.timedelta(weeks=2),
    8: datetime.timedelta(days=30),
    9: datetime.timedelta(days=120),
}

CLOZE_INTERVALS: Dict[MasteryLevel, datetime.timedelta] = {
    MasteryLevel.SEED: datetime.timedelta(hours=1),
    MasteryLevel.SPROUT: datetime.timedelta(hours=4),
    MasteryLevel.SEEDLING: datetime.timedelta(hours=8),
    MasteryLevel.PLANT: datetime.timedelta(days=1),
    MasteryLevel.TREE: datetime.timedelta(days=7),
}

# None means the stage is never scheduled again.
CHARACTER_INTERVALS: Dict[CharacterStage, Optional[datetime.timedelta]] = {
    CharacterStage.APPRENTICE: datetime.timedelta(hours=4),
    CharacterStage.GURU: datetime.timedelta(days=1),
    CharacterStage.MASTER: datetime.timedelta(weeks=1),
    CharacterStage.ENLIGHTENED: datetime.timedelta(days=30),
    CharacterStage.BURNED: None,
}

# Stage a character falls to after a failed review. Higher stages drop further.
CHARACTER_DEMOTIONS: Dict[CharacterStage, CharacterStage] = {
    CharacterStage.APPRENTICE: CharacterStage.APPRENTICE,
    CharacterStage.GURU: CharacterStage.APPRENTICE,
    CharacterStage.MASTER: CharacterStage.APPRENTICE,
    CharacterStage.ENLIGHTENED: CharacterStage.GURU,
    CharacterStage.BURNED: CharacterStage.MASTER,
}

# Older exports used plant names for the character ladder.
LEGACY_STAGE_NAMES: Dict[str, CharacterStage] = {
    "seed": CharacterStage.APPRENTICE,
    "sprout": CharacterStage.GURU,
    "seedling": CharacterStage.MASTER,
    "plant": CharacterStage.ENLIGHTENED,
    "tree": CharacterStage.BURNED,
}

DIFFICULTIES = ("easy", "hard")


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def _resolve_now(now: Optional[datetime.datetime]) -> datetime.datetime:
    return utcnow() if now is None else as_utc(now)


def _clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


# ----------------------------------------------------------------------
# Mastery bands
# ----------------------------------------------------------------------
def get_mastery_level(level: int) -> MasteryLevel:
    """Map a numeric SRS level onto its display band."""
    level = _clamp_level(level)
    for upper, band in MASTERY_BANDS:
        if level <= upper:
            return band
    return MasteryLevel.TREE


def parse_mastery_level(value: Any) -> MasteryLevel:
    if isinstance(value, MasteryLevel):
        return value
    try:
        return MasteryLevel(str(value).strip().lower())
    except ValueError:
        return MasteryLevel.SEED


def parse_character_stage(value: Any) -> CharacterStage:
    """Normalize a stored stage name, accepting the legacy plant names.

    Empty or unrecognized values map to ``locked`` so that a damaged record
    can never become reviewable by accident.
    """
    if isinstance(value, CharacterStage):
        return value
    if not value:
        return CharacterStage.LOCKED
    normalized = str(value).strip().lower()
    if normalized in LEGACY_STAGE_NAMES:
        return LEGACY_STAGE_NAMES[normalized]
    try:
        return CharacterStage(normalized)
    except ValueError:
        return CharacterStage.LOCKED


# ----------------------------------------------------------------------
# Word SRS
# ----------------------------------------------------------------------
def _check_difficulty(difficulty: str) -> None:
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty {difficulty!r}, expected one of {DIFFICULTIES}")


def update_srs_level(word: Any, difficulty: str) -> int:
    """Return the word's level after an answer.

    ``easy`` (correct) climbs one level up to 9, ``hard`` (incorrect) drops one
    level down to 0.
    """
    _check_difficulty(difficulty)
    level = _clamp_level(word.srs_level or 0)
    if difficulty == "easy":
        return min(MAX_LEVEL, level + 1)
    return max(MIN_LEVEL, level - 1)


def calculate_next_review(word: Any, difficulty: str,
                          now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """Timestamp at which the word becomes due after this answer."""
    now = _resolve_now(now)
    return now + WORD_INTERVALS[update_srs_level(word, difficulty)]


def update_word_srs(word: Any, correct: bool,
                    now: Optional[datetime.datetime] = None) -> WordReview:
    now = _resolve_now(now)
    difficulty = "easy" if correct else "hard"
    new_level = update_srs_level(word, difficulty)
    result = WordReview(
        srs_level=new_level,
        mastery_level=get_mastery_level(new_level).value,
        next_review=calculate_next_review(word, difficulty, now=now),
        last_reviewed=now,
        correct_count=(word.correct_count or 0) + (1 if correct else 0),
        wrong_count=(word.wrong_count or 0) + (0 if correct else 1),
    )
    logger.debug("word %s: level %s -> %s", getattr(word, "id", None), word.srs_level, new_level)
    return result


# ----------------------------------------------------------------------
# Cloze SRS
# ----------------------------------------------------------------------
def check_cloze_answer(sentence: Any, user_answer: str) -> bool:
    return (user_answer or "").strip().lower() == (sentence.answer or "").strip().lower()


def update_cloze_srs(sentence: Any, is_correct: bool,
                     now: Optional[datetime.datetime] = None) -> ClozeReview:
    """Move a cloze sentence one level up or down and rebucket its band."""
    now = _resolve_now(now)
    level = _clamp_level(sentence.srs_level or 0)
    if is_correct:
        new_level = min(MAX_LEVEL, level + 1)
    else:
        new_level = max(MIN_LEVEL, level - 1)
    band = get_mastery_level(new_level)
    logger.debug("cloze %s: level %s -> %s (%s)", getattr(sentence, "id", None), level, new_level, band.value)
    return ClozeReview(
        srs_level=new_level,
        mastery_level=band.value,
        next_review=now + CLOZE_INTERVALS[band],
        last_reviewed=now,
        correct_count=(sentence.correct_count or 0) + (1 if is_correct else 0),
        wrong_count=(sentence.wrong_count or 0) + (0 if is_correct else 1),
    )


# ----------------------------------------------------------------------
# Character SRS
# ----------------------------------------------------------------------
def next_character_review(stage: CharacterStage,
                          now: Optional[datetime.datetime] = None) -> Optional[datetime.datetime]:
    interval = CHARACTER_INTERVALS.get(stage)
    if interval is None:
        return None
    return _resolve_now(now) + interval


def update_character_srs(character: Any, meaning_correct: bool, reading_correct: bool,
                         now: Optional[datetime.datetime] = None) -> CharacterReview:
    """Grade one meaning + reading review of a character.

    The stage advances only when both answers are right; any miss demotes
    through ``CHARACTER_DEMOTIONS``. The four per-axis counters always move.
    """
    stage = parse_character_stage(character.srs_stage)
    if stage is CharacterStage.LOCKED:
        raise LockedItemError(f"Character {getattr(character, 'character', '?')!r} is locked")

    now = _resolve_now(now)
    passed = meaning_correct and reading_correct
    if passed:
        new_stage = _STAGE_ORDER[min(stage.rank + 1, len(_STAGE_ORDER) - 1)]
    else:
        new_stage = CHARACTER_DEMOTIONS[stage]
    logger.debug("character %s: %s -> %s", getattr(character, "id", None), stage.value, new_stage.value)

    return CharacterReview(
        srs_stage=new_stage.value,
        next_review=next_character_review(new_stage, now),
        last_reviewed=now,
        correct_count=(character.correct_count or 0) + (1 if passed else 0),
        wrong_count=(character.wrong_count or 0) + (0 if passed else 1),
        meaning_correct=(character.meaning_correct or 0) + (1 if meaning_correct else 0),
        meaning_wrong=(character.meaning_wrong or 0) + (0 if meaning_correct else 1),
        reading_correct=(character.reading_correct or 0) + (1 if reading_correct else 0),
        reading_wrong=(character.reading_wrong or 0) + (0 if reading_correct else 1),
    )


def unlock_character(character: Any, now: Optional[datetime.datetime] = None) -> CharacterReview:
    """Move a locked character onto the ladder. Unlocked ones are returned as-is."""
    stage = parse_character_stage(character.srs_stage)
    now = _resolve_now(now)
    if stage is CharacterStage.LOCKED:
        stage = CharacterStage.APPRENTICE
        next_review: Optional[datetime.datetime] = now
    else:
        next_review = character.next_review
    return CharacterReview(
        srs_stage=stage.value,
        next_review=next_review,
        last_reviewed=character.last_reviewed,
        correct_count=character.correct_count or 0,
        wrong_count=character.wrong_count or 0,
        meaning_correct=character.meaning_correct or 0,
        meaning_wrong=character.meaning_wrong or 0,
        reading_correct=character.reading_correct or 0,
        reading_wrong=character.reading_wrong or 0,
    )


def can_unlock_level(level: int, characters: Iterable[Any]) -> bool:
    """A level opens once every character of the level below is at guru or above."""
    if level <= 1:
        return True
    previous = [c for c in characters if c.level == level - 1]
    return all(parse_character_stage(c.srs_stage) >= CharacterStage.GURU for c in previous)


def get_unlockable_characters(characters: Iterable[T]) -> List[T]:
    items = list(characters)
    open_levels: Dict[int, bool] = {}
    unlockable = []
    for item in items:
        if parse_character_stage(item.srs_stage) is not CharacterStage.LOCKED:  # type: ignore[attr-defined]
            continue
        level = item.level  # type: ignore[attr-defined]
        if level not in open_levels:
            open_levels[level] = can_unlock_level(level, items)
        if open_levels[level]:
            unlockable.append(item)
    return unlockable


# ----------------------------------------------------------------------
# Due queues
# ----------------------------------------------------------------------
def is_due(next_review: Optional[datetime.datetime],
           now: Optional[datetime.datetime] = None) -> bool:
    if next_review is None:
        return True
    return as_utc(next_review) <= _resolve_now(now)


def get_words_due_for_review(words: Iterable[T],
                             now: Optional[datetime.datetime] = None) -> List[T]:
    now = _resolve_now(now)
    return [w for w in words if is_due(w.next_review, now)]  # type: ignore[attr-defined]


def get_cloze_sentences_due_for_review(sentences: Iterable[T],
                                       now: Optional[datetime.datetime] = None) -> List[T]:
    """Due sentences, leaving out mastered (tree) ones."""
    now = _resolve_now(now)
    return [
        s for s in sentences
        if parse_mastery_level(s.mastery_level) is not MasteryLevel.TREE  # type: ignore[attr-defined]
        and is_due(s.next_review, now)  # type: ignore[attr-defined]
    ]


def get_new_cloze_sentences(sentences: Iterable[T]) -> List[T]:
    return [
        s for s in sentences
        if parse_mastery_level(s.mastery_level) is MasteryLevel.SEED or not s.srs_level  # type: ignore[attr-defined]
    ]


def get_difficult_items(items: Iterable[T]) -> List[T]:
    """Items flagged difficult, or missed more often than hit."""
    return [
        i for i in items
        if getattr(i, "is_difficult", False)
        or (i.wrong_count > i.correct_count and i.correct_count > 0)  # type: ignore[attr-defined]
    ]


def get_characters_due_for_review(characters: Iterable[T],
                                  now: Optional[datetime.datetime] = None) -> List[T]:
    """Due characters; locked and burned ones never appear."""
    now = _resolve_now(now)
    excluded = (CharacterStage.LOCKED, CharacterStage.BURNED)
    return [
        c for c in characters
        if parse_character_stage(c.srs_stage) not in excluded  # type: ignore[attr-defined]
        and is_due(c.next_review, now)  # type: ignore[attr-defined]
    ]
