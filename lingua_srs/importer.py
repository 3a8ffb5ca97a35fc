"""Turn delimited files into study rows ready for the repository."""
import csv
import logging
import random
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .structured import CharacterRow, ClozeRow, WordRow

logger = logging.getLogger(__name__)

BLANK = "_____"
MAX_CHARACTER_LEVEL = 60

DELIMITER_NAMES = {"comma": ",", "semicolon": ";", "tab": "\t"}

PART_OF_SPEECH_HEADERS = ("pos", "type", "part of speech")
PRONUNCIATION_HINTS = ("pronunciation", "phonetic", "ipa", "reading")
CLOZE_NATIVE_HEADERS = ("native", "english", "en", "sentence1")
CLOZE_TARGET_HEADERS = ("target", "translation", "trans", "sentence2")
CHARACTER_HEADERS = ("character", "kanji", "hanzi")
MEANING_HEADERS = ("meaning", "meanings")
READING_HEADERS = ("pronunciation", "reading", "pinyin")
LEVEL_HEADERS = ("level", "lvl")

Row = Dict[str, str]


class ImportFormatError(ValueError):
    pass


def _resolve_delimiter(path: Path, delimiter: Optional[str]) -> str:
    if path.suffix.lower() == ".tsv":
        return "\t"
    if not delimiter:
        return ","
    return DELIMITER_NAMES.get(delimiter.lower(), delimiter)


def read_rows(path: Union[str, Path], delimiter: Optional[str] = None) -> List[Row]:
    """Read a CSV/TSV file into dicts keyed by lower-cased, trimmed headers.

    ``utf-8-sig`` drops a leading BOM. Rows with no values at all are skipped.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f, delimiter=_resolve_delimiter(path, delimiter))
        rows: List[Row] = []
        for raw in reader:
            row = {
                (key or "").strip().lower(): (value or "").strip()
                for key, value in raw.items()
                if key is not None
            }
            if any(row.values()):
                rows.append(row)

    logger.debug("Parsed %d rows from %s", len(rows), path)
    if not rows:
        raise ImportFormatError(f"{path.name} appears to be empty or has no data rows")
    return rows


def guess_column(headers: Sequence[str], candidates: Iterable[str],
                 fallback: Optional[str] = None) -> Optional[str]:
    """First header equal to one of ``candidates`` (case-insensitive)."""
    wanted = {c.lower() for c in candidates}
    for header in headers:
        if header.strip().lower() in wanted:
            return header
    return fallback


def _find_hint(headers: Sequence[str], hints: Iterable[str]) -> Optional[str]:
    for header in headers:
        lower = header.strip().lower()
        if any(hint in lower for hint in hints):
            return header
    return None


def _guess_part_of_speech(headers: Sequence[str]) -> Optional[str]:
    for header in headers:
        lower = header.strip().lower()
        if "part" in lower and ("speech" in lower or "pos" in lower):
            return header
    return guess_column(headers, PART_OF_SPEECH_HEADERS)


def _value(row: Row, column: Optional[str]) -> str:
    if not column:
        return ""
    return (row.get(column.strip().lower()) or "").strip()


def _parse_level(raw: str, maximum: Optional[int] = None) -> int:
    try:
        level = int(raw)
    except (TypeError, ValueError):
        return 1
    if level < 1:
        return 1
    if maximum is not None:
        level = min(maximum, level)
    return level


def words_from_rows(rows: Sequence[Row], native_col: str, target_col: str,
                    level_col: Optional[str] = None,
                    part_of_speech_col: Optional[str] = None,
                    pronunciation_col: Optional[str] = None) -> List[WordRow]:
    if not rows:
        return []
    headers = list(rows[0].keys())
    missing = [
        col for col in (native_col, target_col, level_col)
        if col and col.strip().lower() not in headers
    ]
    if missing:
        raise ImportFormatError(
            f"Missing required columns: {', '.join(missing)}. Available columns: {', '.join(headers)}"
        )

    part_of_speech_col = part_of_speech_col or _guess_part_of_speech(headers)
    pronunciation_col = pronunciation_col or _find_hint(headers, PRONUNCIATION_HINTS)

    words: List[WordRow] = []
    skipped = 0
    for row in rows:
        native = _value(row, native_col)
        target = _value(row, target_col)
        if not native or not target:
            skipped += 1
            continue
        words.append(WordRow(
            native=native,
            target=target,
            level=_parse_level(_value(row, level_col)) if level_col else 1,
            part_of_speech=_value(row, part_of_speech_col) or None,
            pronunciation=_value(row, pronunciation_col) or None,
        ))

    logger.info("Prepared %d words, skipped %d rows without native/target text", len(words), skipped)
    return words


def make_cloze(target: str, rng: Optional[random.Random] = None) -> Tuple[str, str]:
    """Blank one random whitespace-separated token of ``target``.

    Returns ``(cloze_text, answer)``. A single-word sentence blanks the whole word.
    """
    tokens = target.split()
    if not tokens:
        raise ValueError("Cannot build a cloze from an empty sentence")
    index = (rng or random).randrange(len(tokens))
    answer = tokens[index]
    tokens[index] = BLANK
    return " ".join(tokens), answer


def cloze_from_rows(rows: Sequence[Row], rng: Optional[random.Random] = None) -> List[ClozeRow]:
    if not rows:
        return []
    headers = list(rows[0].keys())
    native_col = guess_column(headers, CLOZE_NATIVE_HEADERS, headers[0])
    target_col = guess_column(headers, CLOZE_TARGET_HEADERS, headers[1] if len(headers) > 1 else headers[0])

    sentences = []
    for row in rows:
        native = _value(row, native_col)
        target = _value(row, target_col)
        if not native or not target:
            continue
        cloze_text, answer = make_cloze(target, rng)
        sentences.append(ClozeRow(native=native, target=target, cloze_text=cloze_text, answer=answer))
    logger.info("Prepared %d cloze sentences from %d rows", len(sentences), len(rows))
    return sentences


def characters_from_rows(rows: Sequence[Row], character_col: Optional[str] = None,
                         meaning_col: Optional[str] = None,
                         pronunciation_col: Optional[str] = None,
                         level_col: Optional[str] = None) -> List[CharacterRow]:
    if not rows:
        return []
    headers = list(rows[0].keys())
    character_col = character_col or guess_column(headers, CHARACTER_HEADERS, headers[0])
    meaning_col = meaning_col or guess_column(headers, MEANING_HEADERS, headers[1] if len(headers) > 1 else headers[0])
    pronunciation_col = pronunciation_col or guess_column(headers, READING_HEADERS)
    level_col = level_col or guess_column(headers, LEVEL_HEADERS)

    characters = []
    for row in rows:
        character = _value(row, character_col)
        meaning = _value(row, meaning_col)
        if not character or not meaning:
            continue
        characters.append(CharacterRow(
            character=character,
            meaning=meaning,
            pronunciation=_value(row, pronunciation_col),
            level=_parse_level(_value(row, level_col), MAX_CHARACTER_LEVEL) if level_col else 1,
        ))
    logger.info("Prepared %d characters from %d rows", len(characters), len(rows))
    return characters
