import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from lingua_srs import db
from lingua_srs.app import create_app
from lingua_srs.structured import CharacterRow, ClozeRow, WordRow


@pytest.fixture
def repo(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'app.db'}")
    db.Base.metadata.create_all(bind=engine)
    return db.StudyRepository(sessionmaker(bind=engine, expire_on_commit=False))


@pytest.fixture
def client(repo):
    app = create_app(repo)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_list_courses(client, repo):
    repo.add_course("German", "word")
    response = client.get("/api/courses")
    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "success"
    assert [c["name"] for c in data["courses"]] == ["German"]


def test_next_item_and_exclude(client, repo):
    course = repo.add_course("German", "word")
    repo.add_words(course.id, [WordRow("dog", "Hund"), WordRow("cat", "Katze")])

    first = client.get(f"/api/courses/{course.id}/next").get_json()
    assert first["status"] == "success"
    assert first["item"]["kind"] == "word"
    assert first["item"]["native"] == "dog"

    second = client.get(f"/api/courses/{course.id}/next?exclude_id={first['item']['id']}").get_json()
    assert second["item"]["native"] == "cat"


def test_next_item_when_nothing_due(client, repo):
    course = repo.add_course("Empty", "word")
    data = client.get(f"/api/courses/{course.id}/next").get_json()
    assert data["status"] == "no_items"


def test_answer_word(client, repo):
    course = repo.add_course("German", "word")
    repo.add_words(course.id, [WordRow("dog", "Hund")])
    word_id = repo.list_words(course.id)[0].id

    response = client.post(f"/api/words/{word_id}/answer", json={"correct": True})
    assert response.status_code == 200
    data = response.get_json()
    assert data["item"]["srs_level"] == 1
    assert data["item"]["mastery_level"] == "sprout"
    assert data["item"]["next_review"].endswith("+00:00")

    bad = client.post(f"/api/words/{word_id}/answer", json={"correct": "yes"})
    assert bad.status_code == 400
    assert bad.get_json()["status"] == "error"


def test_cloze_payload_hides_answer(client, repo):
    course = repo.add_course("Sentences", "cloze")
    repo.add_cloze_sentences(course.id, [ClozeRow("The dog sleeps", "Der Hund schläft", "Der _____ schläft", "Hund")])

    item = client.get(f"/api/courses/{course.id}/next").get_json()["item"]
    assert item["kind"] == "cloze"
    assert "answer" not in item and "target" not in item

    data = client.post(f"/api/cloze/{item['id']}/answer", json={"answer": "Katze"}).get_json()
    assert data["correct"] is False
    assert data["expected"] == "Hund"

    missing = client.post(f"/api/cloze/{item['id']}/answer", json={})
    assert missing.status_code == 400


def test_locked_character_conflict(client, repo):
    course = repo.add_course("Kanji", "character", target_language="japanese")
    repo.add_characters(course.id, [CharacterRow("水", "water", "mizu")])
    character_id = repo.list_characters(course.id)[0].id

    payload = {"meaning_correct": True, "reading_correct": True}
    locked = client.post(f"/api/characters/{character_id}/answer", json=payload)
    assert locked.status_code == 409

    repo.unlock_characters(course.id)
    data = client.post(f"/api/characters/{character_id}/answer", json=payload).get_json()
    assert data["correct"] is True
    assert data["item"]["srs_stage"] == "guru"


def test_unknown_item_is_404(client):
    response = client.post("/api/words/999/answer", json={"correct": False})
    assert response.status_code == 404
    assert response.get_json()["status"] == "error"


def test_progress(client, repo):
    course = repo.add_course("German", "word")
    repo.add_words(course.id, [WordRow("dog", "Hund")])
    data = client.get(f"/api/courses/{course.id}/progress").get_json()
    assert data["progress"]["total"] == 1
    assert data["progress"]["bands"]["seed"] == 1


@pytest.mark.parametrize("body", [[True], "correct", 1])
def test_answer_requires_json_object(client, repo, body):
    course = repo.add_course("German", "word")
    repo.add_words(course.id, [WordRow("dog", "Hund")])
    word_id = repo.list_words(course.id)[0].id

    for url in (f"/api/words/{word_id}/answer", "/api/cloze/1/answer", "/api/characters/1/answer"):
        response = client.post(url, json=body)
        assert response.status_code == 400, url
        assert response.get_json()["message"] == "Request body must be a JSON object"


def test_mark_difficult_and_list_pools(client, repo):
    course = repo.add_course("German", "word")
    repo.add_words(course.id, [WordRow("dog", "Hund"), WordRow("cat", "Katze")])
    dog, cat = repo.list_words(course.id)
    repo.update_word(cat.id, {"srs_level": 3, "mastery_level": "seedling"})

    response = client.post(f"/api/words/{dog.id}/difficult", json={"difficult": True})
    assert response.status_code == 200
    assert response.get_json()["item"]["is_difficult"] is True

    difficult = client.get(f"/api/courses/{course.id}/difficult").get_json()
    assert [i["id"] for i in difficult["items"]] == [dog.id]
    new = client.get(f"/api/courses/{course.id}/new").get_json()
    assert [i["id"] for i in new["items"]] == [dog.id]

    client.post(f"/api/words/{dog.id}/difficult", json={"difficult": False})
    assert client.get(f"/api/courses/{course.id}/difficult").get_json()["items"] == []

    assert client.post(f"/api/words/{dog.id}/difficult", json={}).status_code == 400
    assert client.post("/api/words/999/difficult", json={"difficult": True}).status_code == 404


def test_mark_cloze_difficult(client, repo):
    course = repo.add_course("Sentences", "cloze")
    repo.add_cloze_sentences(course.id, [ClozeRow("I eat", "Ich esse", "Ich _____", "esse")])
    sentence_id = repo.list_cloze_sentences(course.id)[0].id

    data = client.post(f"/api/cloze/{sentence_id}/difficult", json={"difficult": True}).get_json()
    assert data["item"]["is_difficult"] is True
    assert "answer" not in data["item"]
    items = client.get(f"/api/courses/{course.id}/difficult").get_json()["items"]
    assert [i["id"] for i in items] == [sentence_id]


def test_character_course_has_no_practice_pools(client, repo):
    course = repo.add_course("Kanji", "character")
    assert client.get(f"/api/courses/{course.id}/difficult").status_code == 400
    assert client.get(f"/api/courses/{course.id}/new").status_code == 400
    assert client.get("/api/courses/999/new").status_code == 404
