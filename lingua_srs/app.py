"""
Lingua SRS - Flask JSON API
Serves due items and records answers so a browser front end can run sessions.
"""
import logging
import os
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request

from . import db
from .scheduler import LockedItemError

logger = logging.getLogger(__name__)

DEBUG = os.environ.get("DEBUG", "0") == "1"


def _item_payload(item: Any) -> Dict[str, Any]:
    """Item fields the front end needs; cloze answers stay on the server."""
    data = db.to_dict(item)
    if isinstance(item, db.Word):
        data["kind"] = "word"
    elif isinstance(item, db.ClozeSentence):
        data["kind"] = "cloze"
        data.pop("answer", None)
        data.pop("target", None)
    else:
        data["kind"] = "character"
    return data


def _error(message: str, status: int) -> Tuple[Any, int]:
    return jsonify({"status": "error", "message": message}), status


def _repo() -> db.StudyRepository:
    return current_app.config["REPOSITORY"]


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def _flag(payload: Dict[str, Any], key: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be true or false")
    return value


def create_app(repository: Optional[db.StudyRepository] = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    if repository is None:
        if not db.is_db_initialized():
            db.init_db()
            logger.info("Database initialized on startup")
        repository = db.StudyRepository()
    app.config["REPOSITORY"] = repository

    @app.errorhandler(db.ItemNotFoundError)
    def handle_not_found(e: db.ItemNotFoundError) -> Any:
        return _error(str(e), 404)

    @app.errorhandler(LockedItemError)
    def handle_locked(e: LockedItemError) -> Any:
        return _error(str(e), 409)

    @app.route("/api/courses")
    def api_courses() -> Any:
        courses = [db.to_dict(c) for c in _repo().list_courses()]
        return jsonify({"status": "success", "courses": courses})

    @app.route("/api/courses/<int:course_id>/next")
    def api_next_item(course_id: int) -> Any:
        """Next due item of a course, optionally skipping the one just shown."""
        exclude_id = request.args.get("exclude_id", type=int)
        item = _repo().next_due_item(course_id, exclude_id=exclude_id)
        if item is None:
            return jsonify({"status": "no_items", "message": "No items due for review!"})
        return jsonify({"status": "success", "item": _item_payload(item)})

    @app.route("/api/words/<int:word_id>/answer", methods=["POST"])
    def api_answer_word(word_id: int) -> Any:
        try:
            correct = _flag(_payload(), "correct")
        except ValueError as e:
            return _error(str(e), 400)
        word = _repo().review_word(word_id, correct)
        return jsonify({"status": "success", "correct": correct, "item": _item_payload(word)})

    @app.route("/api/words/<int:word_id>/difficult", methods=["POST"])
    def api_mark_word_difficult(word_id: int) -> Any:
        try:
            difficult = _flag(_payload(), "difficult")
        except ValueError as e:
            return _error(str(e), 400)
        word = _repo().set_word_difficult(word_id, difficult)
        return jsonify({"status": "success", "item": _item_payload(word)})

    @app.route("/api/cloze/<int:sentence_id>/answer", methods=["POST"])
    def api_answer_cloze(sentence_id: int) -> Any:
        try:
            answer = _payload().get("answer")
        except ValueError as e:
            return _error(str(e), 400)
        if not isinstance(answer, str):
            return _error("'answer' must be a string", 400)
        sentence, correct = _repo().review_cloze(sentence_id, answer)
        return jsonify({
            "status": "success",
            "correct": correct,
            "expected": sentence.answer,
            "item": _item_payload(sentence),
        })

    @app.route("/api/cloze/<int:sentence_id>/difficult", methods=["POST"])
    def api_mark_cloze_difficult(sentence_id: int) -> Any:
        try:
            difficult = _flag(_payload(), "difficult")
        except ValueError as e:
            return _error(str(e), 400)
        sentence = _repo().set_cloze_difficult(sentence_id, difficult)
        return jsonify({"status": "success", "item": _item_payload(sentence)})

    @app.route("/api/characters/<int:character_id>/answer", methods=["POST"])
    def api_answer_character(character_id: int) -> Any:
        try:
            payload = _payload()
            meaning_correct = _flag(payload, "meaning_correct")
            reading_correct = _flag(payload, "reading_correct")
        except ValueError as e:
            return _error(str(e), 400)
        character = _repo().review_character(character_id, meaning_correct, reading_correct)
        return jsonify({
            "status": "success",
            "correct": meaning_correct and reading_correct,
            "item": _item_payload(character),
        })

    @app.route("/api/courses/<int:course_id>/difficult")
    def api_difficult_items(course_id: int) -> Any:
        """Words or sentences to drill regardless of their schedule."""
        try:
            items = _repo().difficult_items(course_id)
        except ValueError as e:
            return _error(str(e), 400)
        return jsonify({"status": "success", "items": [_item_payload(i) for i in items]})

    @app.route("/api/courses/<int:course_id>/new")
    def api_new_items(course_id: int) -> Any:
        try:
            items = _repo().new_items(course_id)
        except ValueError as e:
            return _error(str(e), 400)
        return jsonify({"status": "success", "items": [_item_payload(i) for i in items]})

    @app.route("/api/courses/<int:course_id>/progress")
    def api_progress(course_id: int) -> Any:
        return jsonify({"status": "success", "progress": _repo().course_progress(course_id)})

    return app


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Lingua SRS web API")
    parser.add_argument("--host", default="127.0.0.1", help="Host IP to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind to (default: 5000)")
    parser.add_argument("--db", help="SQLite database file")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    if args.db:
        db.configure(args.db)
    logging.basicConfig(level=logging.DEBUG if (args.debug or DEBUG) else logging.INFO)
    create_app().run(debug=args.debug or DEBUG, host=args.host, port=args.port)
