import random

import pytest

from lingua_srs import importer
from lingua_srs.importer import BLANK, ImportFormatError


def write(tmp_path, name: str, text: str, encoding: str = "utf-8"):
    path = tmp_path / name
    path.write_text(text, encoding=encoding)
    return path


def test_read_rows_normalizes_headers_and_strips_bom(tmp_path):
    path = write(tmp_path, "words.csv", " English ,German\ndog, Hund \n,\ncat,Katze\n", encoding="utf-8-sig")
    rows = importer.read_rows(path)
    assert rows == [{"english": "dog", "german": "Hund"}, {"english": "cat", "german": "Katze"}]


def test_read_rows_tsv_and_named_delimiters(tmp_path):
    tsv = write(tmp_path, "words.tsv", "native\ttarget\nyes\tja\n")
    assert importer.read_rows(tsv) == [{"native": "yes", "target": "ja"}]

    semi = write(tmp_path, "words.txt", "native;target\nno;nein\n")
    assert importer.read_rows(semi, delimiter="semicolon") == [{"native": "no", "target": "nein"}]


def test_read_rows_rejects_empty_file(tmp_path):
    path = write(tmp_path, "empty.csv", "native,target\n")
    with pytest.raises(ImportFormatError):
        importer.read_rows(path)


def test_words_from_rows_reports_missing_columns():
    rows = [{"english": "dog", "german": "Hund"}]
    with pytest.raises(ImportFormatError) as excinfo:
        importer.words_from_rows(rows, "native", "german")
    assert "native" in str(excinfo.value)
    assert "english" in str(excinfo.value)


def test_words_from_rows_detects_optional_columns():
    rows = [
        {"english": "dog", "german": "Hund", "part of speech": "noun", "ipa": "hʊnt", "level": "3"},
        {"english": "", "german": "leer", "part of speech": "", "ipa": "", "level": ""},
        {"english": "run", "german": "laufen", "part of speech": "verb", "ipa": "", "level": "zero"},
    ]
    words = importer.words_from_rows(rows, "English", "German", level_col="level")
    assert len(words) == 2
    dog, run = words
    assert (dog.native, dog.target, dog.level) == ("dog", "Hund", 3)
    assert dog.part_of_speech == "noun"
    assert dog.pronunciation == "hʊnt"
    assert run.level == 1
    assert run.pronunciation is None


def test_make_cloze_blanks_one_token():
    cloze_text, answer = importer.make_cloze("Der Hund schläft", random.Random(1))
    assert cloze_text.count(BLANK) == 1
    assert cloze_text.replace(BLANK, answer) == "Der Hund schläft"

    assert importer.make_cloze("Hallo") == (BLANK, "Hallo")
    with pytest.raises(ValueError):
        importer.make_cloze("   ")


def test_cloze_from_rows_uses_known_headers():
    rows = [
        {"id": "1", "english": "I am tired", "translation": "Ich bin müde"},
        {"id": "2", "english": "", "translation": "ohne Partner"},
    ]
    sentences = importer.cloze_from_rows(rows, random.Random(7))
    assert len(sentences) == 1
    sentence = sentences[0]
    assert sentence.native == "I am tired"
    assert sentence.target == "Ich bin müde"
    assert sentence.answer in sentence.target.split()
    assert sentence.cloze_text.replace(BLANK, sentence.answer) == sentence.target


def test_characters_from_rows_clamps_level():
    rows = [
        {"kanji": "水", "meanings": "water", "reading": "すい", "level": "99"},
        {"kanji": "火", "meanings": "fire", "reading": "か", "level": "-3"},
        {"kanji": "", "meanings": "nothing", "reading": "", "level": "1"},
    ]
    characters = importer.characters_from_rows(rows)
    assert [(c.character, c.level) for c in characters] == [("水", 60), ("火", 1)]
    assert characters[0].pronunciation == "すい"


def test_characters_from_rows_falls_back_to_first_columns():
    rows = [{"glyph": "山", "gloss": "mountain"}]
    characters = importer.characters_from_rows(rows)
    assert characters[0].character == "山"
    assert characters[0].meaning == "mountain"
    assert characters[0].pronunciation == ""
    assert characters[0].level == 1


def test_guess_column():
    headers = ["ID", "Sentence1", "Sentence2"]
    assert importer.guess_column(headers, ("sentence1",)) == "Sentence1"
    assert importer.guess_column(headers, ("native",)) is None
    assert importer.guess_column(headers, ("native",), "ID") == "ID"
