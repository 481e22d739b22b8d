"""Tests for the terminal runner."""
import json
import random
from datetime import UTC, datetime
from unittest.mock import Mock

from vocabreview.__main__ import import_words, run_session
from vocabreview.config import ReviewSettings
from vocabreview.models.review_models import SessionPhase
from vocabreview.services.keyboard import KeyboardRouter
from vocabreview.services.progress_store import LibraryProgressStore
from vocabreview.services.review_session import ReviewSessionController
from vocabreview.services.scheduling import SchedulingAdapter


def test_import_words(tmp_path) -> None:
    path = tmp_path / "words.json"
    path.write_text(json.dumps([
        {"id": "1", "word": "abandon", "translation": "покинуть"},
        {
            "id": "2",
            "word": "abolish",
            "folder_ids": ["verbs"],
            "due": "2026-11-02T09:00:00+00:00",
            "stability": 8.4,
            "proficiency_score": 3,
        },
    ]), encoding="utf-8")
    store = Mock(spec=LibraryProgressStore)

    assert import_words(store, path) == 2
    added = [call.args[0].word for call in store.add_word.call_args_list]
    assert added == ["abandon", "abolish"]

    imported = store.add_word.call_args_list[1].args[0]
    assert imported.memory.due == datetime(2026, 11, 2, 9, tzinfo=UTC)
    assert imported.memory.stability == 8.4
    assert imported.proficiency_score == 3


def make_controller(words, keyboard, fake_engine) -> ReviewSessionController:
    return ReviewSessionController(
        words,
        ReviewSettings(),
        scheduler=SchedulingAdapter(fake_engine, rng=random.Random(0)),
        keyboard=keyboard,
        notifier=Mock(),
        rng=random.Random(0),
    )


def test_run_flashcard_session(make_word, fake_engine) -> None:
    words = [make_word(), make_word()]
    keyboard = KeyboardRouter()
    controller = make_controller(words, keyboard, fake_engine)
    controller.start_session("all", "flashcard")
    answers = iter(["", "4", "", "2"])
    output = []

    run_session(controller, keyboard, read=lambda _: next(answers), write=output.append)

    assert controller.phase == SessionPhase.COMPLETE
    assert controller.summary.grades == {words[0].id: 4, words[1].id: 2}
    assert words[0].word in output


def test_run_spelling_session_with_retry(make_word, fake_engine) -> None:
    word = make_word(word="abandon", translation="покинуть")
    keyboard = KeyboardRouter()
    controller = make_controller([word], keyboard, fake_engine)
    controller.start_session("all", "spelling")
    answers = iter(["abolish", "abandon", ""])
    output = []

    run_session(controller, keyboard, read=lambda _: next(answers), write=output.append)

    assert controller.summary.grades == {word.id: 1}
    assert "Incorrect. The answer is: abandon" in output


def test_quit_abandons_session(make_word, fake_engine) -> None:
    keyboard = KeyboardRouter()
    controller = make_controller([make_word()], keyboard, fake_engine)
    controller.start_session("all", "spelling")

    run_session(controller, keyboard, read=lambda _: "q", write=lambda _: None)

    assert controller.phase == SessionPhase.IDLE
    assert keyboard.listener_count == 0
