import dataclasses
import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class WordReview:
    srs_level: int
    mastery_level: str
    next_review: datetime.datetime
    last_reviewed: datetime.datetime
    correct_count: int
    wrong_count: int

    def as_changes(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class ClozeReview:
    srs_level: int
    mastery_level: str
    next_review: datetime.datetime
    last_reviewed: datetime.datetime
    correct_count: int
    wrong_count: int

    def as_changes(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class CharacterReview:
    srs_stage: str
    next_review: Optional[datetime.datetime]
    last_reviewed: Optional[datetime.datetime]
    correct_count: int
    wrong_count: int
    meaning_correct: int
    meaning_wrong: int
    reading_correct: int
    reading_wrong: int

    def as_changes(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class WordRow:
    native: str
    target: str
    level: int = 1
    part_of_speech: Optional[str] = None
    pronunciation: Optional[str] = None


@dataclass
class ClozeRow:
    native: str
    target: str
    cloze_text: str
    answer: str


@dataclass
class CharacterRow:
    character: str
    meaning: str
    pronunciation: str = ""
    level: int = 1
