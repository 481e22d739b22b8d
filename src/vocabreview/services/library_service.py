"""Helpers for picking the words and content a session reviews."""
import random
import re
from typing import Iterable, List, Optional, Sequence, Union

from vocabreview.models.review_models import DefinitionEntry, MemoryState, VocabularyWord

ALL_FOLDERS = "all"

CJK_PATTERN = re.compile(r"[一-鿿]")


def filter_words_by_folders(
    words: Sequence[VocabularyWord],
    selection: Union[str, Iterable[str]],
    all_folder_ids: Iterable[str] = (),
) -> List[VocabularyWord]:
    """Words belonging to any selected folder; "all" selects everything."""
    selected = {selection} if isinstance(selection, str) else set(selection)
    all_folder_ids = set(all_folder_ids)
    if ALL_FOLDERS in selected or (all_folder_ids and all_folder_ids <= selected):
        return list(words)
    return [word for word in words if word.folder_ids & selected]


def normalize_entries(word: VocabularyWord) -> List[DefinitionEntry]:
    """Entries with their example lists filled in."""
    entries = []
    for entry in word.entries:
        examples = list(entry.examples) or ([entry.example] if entry.example else [])
        entries.append(DefinitionEntry(
            definition=entry.definition,
            translation=entry.translation,
            example=entry.example or (examples[0] if examples else ""),
            examples=examples,
        ))
    return entries


def pick_review_entry(word: VocabularyWord, rng: Optional[random.Random] = None) -> DefinitionEntry:
    """One of the user's selected senses at random, else the first sense."""
    if word.selected_definitions:
        selected = normalize_entries(VocabularyWord(id=word.id, word=word.word, entries=word.selected_definitions))
        if selected:
            return (rng or random).choice(selected)
    entries = normalize_entries(word)
    return entries[0] if entries else DefinitionEntry()


def split_example_lines(example: str) -> List[str]:
    """Split an example into sentence and translation lines."""
    trimmed = (example or "").strip()
    if not trimmed:
        return []
    if "\n" in trimmed:
        return [line.strip() for line in trimmed.split("\n") if line.strip()]
    match = CJK_PATTERN.search(trimmed)
    if match and match.start() > 0:
        sentence = trimmed[:match.start()].strip()
        translation = trimmed[match.start():].strip()
        if sentence and translation:
            return [sentence, translation]
    return [trimmed]


def preferred_audio_url(word: VocabularyWord, accent: str = "us") -> Optional[str]:
    """The recording for the preferred accent, falling back to any other."""
    if accent == "uk":
        return word.uk_audio_url or word.audio_url or word.us_audio_url
    return word.us_audio_url or word.audio_url or word.uk_audio_url


def word_from_dict(data: dict) -> VocabularyWord:
    """Build a word from an exported JSON record."""
    def entries(items):
        return [
            DefinitionEntry(
                definition=item.get("definition") or "",
                translation=item.get("translation") or "",
                example=item.get("example") or "",
                examples=list(item.get("examples") or []),
            )
            for item in items or []
        ]

    word_entries = entries(data.get("entries"))
    if not word_entries and (data.get("definition") or data.get("translation") or data.get("example")):
        word_entries = entries([data])

    return VocabularyWord(
        id=str(data.get("id") or data["word"]),
        word=data["word"],
        part_of_speech=data.get("pos") or data.get("part_of_speech") or "",
        entries=word_entries,
        selected_definitions=entries(data.get("selected_definitions")),
        folder_ids=set(data.get("folder_ids") or []),
        audio_url=data.get("audio_url"),
        us_audio_url=data.get("us_audio_url"),
        uk_audio_url=data.get("uk_audio_url"),
        memory=MemoryState.from_fields(data),
        proficiency_score=int(data.get("proficiency_score") or 0),
    )
