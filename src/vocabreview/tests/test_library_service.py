"""Tests for library helpers."""
import random
from datetime import UTC, datetime

import pytest

from vocabreview.models.review_models import CardState, DefinitionEntry, VocabularyWord
from vocabreview.services.library_service import (
    filter_words_by_folders,
    normalize_entries,
    pick_review_entry,
    preferred_audio_url,
    split_example_lines,
    word_from_dict,
)


@pytest.fixture
def foldered_words(make_word):
    return [
        make_word(folder_ids={"verbs"}),
        make_word(folder_ids={"nouns"}),
        make_word(folder_ids={"verbs", "travel"}),
        make_word(folder_ids=set()),
    ]


def test_filter_all(foldered_words) -> None:
    assert filter_words_by_folders(foldered_words, "all") == foldered_words


def test_filter_single_folder(foldered_words) -> None:
    selected = filter_words_by_folders(foldered_words, "verbs")
    assert selected == [foldered_words[0], foldered_words[2]]


def test_filter_several_folders(foldered_words) -> None:
    selected = filter_words_by_folders(foldered_words, ["nouns", "travel"])
    assert selected == [foldered_words[1], foldered_words[2]]


def test_selecting_every_folder_means_all(foldered_words) -> None:
    selected = filter_words_by_folders(foldered_words, ["verbs", "nouns", "travel"], ["verbs", "nouns", "travel"])
    assert selected == foldered_words


def test_filter_unknown_folder(foldered_words) -> None:
    assert filter_words_by_folders(foldered_words, ["missing"]) == []


@pytest.mark.parametrize(
    "example,expected",
    [
        ("", []),
        ("   ", []),
        ("He abandoned ship.", ["He abandoned ship."]),
        ("He abandoned ship.\nОн покинул корабль.", ["He abandoned ship.", "Он покинул корабль."]),
        ("He abandoned ship.\n\n  Second line  ", ["He abandoned ship.", "Second line"]),
        ("He abandoned ship. 他弃船了。", ["He abandoned ship.", "他弃船了。"]),
        ("他弃船了。", ["他弃船了。"]),
    ],
)
def test_split_example_lines(example: str, expected) -> None:
    assert split_example_lines(example) == expected


def test_normalize_entries_fills_examples() -> None:
    word = VocabularyWord(id="1", word="abandon", entries=[DefinitionEntry(example="He abandoned ship.")])
    entry = normalize_entries(word)[0]
    assert entry.examples == ["He abandoned ship."]

    word = VocabularyWord(id="1", word="abandon", entries=[DefinitionEntry(examples=["First.", "Second."])])
    assert normalize_entries(word)[0].example == "First."


def test_pick_review_entry_prefers_selected_definitions() -> None:
    selected = [DefinitionEntry(definition="leave behind"), DefinitionEntry(definition="give up")]
    word = VocabularyWord(
        id="1",
        word="abandon",
        entries=[DefinitionEntry(definition="first sense")],
        selected_definitions=selected,
    )
    picks = {pick_review_entry(word, random.Random(seed)).definition for seed in range(20)}
    assert picks == {"leave behind", "give up"}


def test_pick_review_entry_defaults_to_first_sense() -> None:
    word = VocabularyWord(
        id="1",
        word="abandon",
        entries=[DefinitionEntry(definition="first"), DefinitionEntry(definition="second")],
    )
    assert pick_review_entry(word).definition == "first"


def test_pick_review_entry_without_entries() -> None:
    assert pick_review_entry(VocabularyWord(id="1", word="abandon")) == DefinitionEntry()


def test_preferred_audio_url() -> None:
    word = VocabularyWord(id="1", word="tomato", us_audio_url="us.mp3", uk_audio_url="uk.mp3")
    assert preferred_audio_url(word, "us") == "us.mp3"
    assert preferred_audio_url(word, "uk") == "uk.mp3"

    word = VocabularyWord(id="2", word="tomato", uk_audio_url="uk.mp3")
    assert preferred_audio_url(word, "us") == "uk.mp3"
    assert preferred_audio_url(VocabularyWord(id="3", word="tomato"), "us") is None


def test_word_from_dict() -> None:
    word = word_from_dict({
        "id": 42,
        "word": "abandon",
        "pos": "verb",
        "entries": [{"definition": "leave", "translation": "покинуть", "example": "He abandoned ship."}],
        "folder_ids": ["verbs"],
        "us_audio_url": "us.mp3",
        "proficiency_score": "2",
    })
    assert word.id == "42"
    assert word.part_of_speech == "verb"
    assert word.entries[0].translation == "покинуть"
    assert word.folder_ids == {"verbs"}
    assert word.us_audio_url == "us.mp3"
    assert word.proficiency_score == 2
    assert word.memory.due is None


def test_word_from_flat_dict() -> None:
    word = word_from_dict({"word": "abandon", "translation": "покинуть"})
    assert word.id == "abandon"
    assert word.entries == [DefinitionEntry(translation="покинуть")]


def test_word_from_dict_keeps_review_progress() -> None:
    word = word_from_dict({
        "word": "abandon",
        "next_review": "2026-10-25T12:00:00+00:00",
        "stability": 12.5,
        "difficulty": "4.2",
        "reps": 6,
        "state": 2,
        "last_review": "2026-10-13T12:00:00+00:00",
        "proficiency_score": 3,
    })
    assert word.memory.due == datetime(2026, 10, 25, 12, tzinfo=UTC)
    assert word.memory.stability == 12.5
    assert word.memory.difficulty == 4.2
    assert word.memory.reps == 6
    assert word.memory.state == CardState.REVIEW
    assert word.proficiency_score == 3
