"""Persistence collaborator for review progress."""
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor, Future
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import DateTime
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from vocabreview import monitoring
from vocabreview.exceptions import ProgressStoreError, SchemaMismatchError
from vocabreview.models.base import SessionLocal
from vocabreview.models.models import LibraryEntry
from vocabreview.models.review_models import (
    DefinitionEntry,
    MemoryState,
    VocabularyWord,
    parse_review_date,
)

logger = logging.getLogger(__name__)

# Fields every deployed schema has
FALLBACK_FIELDS = ("due", "next_review", "proficiency_score")

Notifier = Callable[[str, str], None]

SAVE_FAILED_MESSAGE = "Review progress could not be saved."


def _is_missing_column_error(error: SQLAlchemyError) -> bool:
    message = str(error).lower()
    return "no such column" in message or "has no column" in message or "undefinedcolumn" in message


class ProgressStore(ABC):
    """Accepts partial progress updates keyed by library id."""

    @abstractmethod
    def update_progress(self, library_id: Any, fields: Mapping[str, Any]) -> None:
        """Apply fields to the library entry; raise ProgressStoreError on failure."""
        raise NotImplementedError("Subclasses must implement this method")


class LibraryProgressStore(ProgressStore):
    """SQLAlchemy store over the user_library table."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    @staticmethod
    def _column_values(fields: Mapping[str, Any]) -> Dict[str, Any]:
        columns = LibraryEntry.__table__.columns
        unknown = [key for key in fields if key not in columns or key == "id"]
        if unknown:
            raise SchemaMismatchError(f"Unknown progress fields: {', '.join(sorted(unknown))}")

        values = {}
        for key, value in fields.items():
            if isinstance(columns[key].type, DateTime) and value is not None:
                value = parse_review_date(value)
            values[key] = value
        return values

    def update_progress(self, library_id: Any, fields: Mapping[str, Any]) -> None:
        values = self._column_values(fields)
        with self.session_factory() as db:
            try:
                entry = db.get(LibraryEntry, library_id)
                if entry is None:
                    raise ProgressStoreError(f"Library entry {library_id} not found")
                for key, value in values.items():
                    setattr(entry, key, value)
                db.commit()
            except (OperationalError, ProgrammingError) as e:
                db.rollback()
                if _is_missing_column_error(e):
                    raise SchemaMismatchError(str(e)) from e
                raise ProgressStoreError(str(e)) from e
            except SQLAlchemyError as e:
                db.rollback()
                raise ProgressStoreError(str(e)) from e

    def add_word(self, word: VocabularyWord) -> VocabularyWord:
        """Store a new word and set its library id."""
        entry = LibraryEntry(
            word_id=str(word.id),
            word=word.word,
            part_of_speech=word.part_of_speech,
            entries=[_entry_to_dict(entry) for entry in word.entries],
            selected_definitions=[_entry_to_dict(entry) for entry in word.selected_definitions],
            folder_ids=sorted(word.folder_ids),
            audio_url=word.audio_url,
            us_audio_url=word.us_audio_url,
            uk_audio_url=word.uk_audio_url,
            proficiency_score=word.proficiency_score,
        )
        for key, value in self._column_values(word.memory.to_fields()).items():
            setattr(entry, key, value)
        entry.next_review = entry.due

        with self.session_factory() as db:
            try:
                db.add(entry)
                db.commit()
                db.refresh(entry)
            except SQLAlchemyError as e:
                db.rollback()
                raise ProgressStoreError(str(e)) from e
            word.library_id = entry.id
        return word

    def load_words(self) -> List[VocabularyWord]:
        """All library entries as vocabulary words."""
        with self.session_factory() as db:
            try:
                entries = db.query(LibraryEntry).order_by(LibraryEntry.id).all()
            except SQLAlchemyError as e:
                raise ProgressStoreError(str(e)) from e
            return [entry_to_word(entry) for entry in entries]


def _entry_to_dict(entry: DefinitionEntry) -> Dict[str, Any]:
    return {
        "definition": entry.definition,
        "translation": entry.translation,
        "example": entry.example,
        "examples": list(entry.examples),
    }


def _entry_from_dict(data: Mapping[str, Any]) -> DefinitionEntry:
    return DefinitionEntry(
        definition=data.get("definition") or "",
        translation=data.get("translation") or "",
        example=data.get("example") or "",
        examples=list(data.get("examples") or []),
    )


def entry_to_word(entry: LibraryEntry) -> VocabularyWord:
    """Convert a stored row into the session's word model."""
    fields = {column.name: getattr(entry, column.name) for column in LibraryEntry.__table__.columns}
    return VocabularyWord(
        id=entry.word_id,
        word=entry.word,
        part_of_speech=entry.part_of_speech or "",
        entries=[_entry_from_dict(data) for data in entry.entries or []],
        selected_definitions=[_entry_from_dict(data) for data in entry.selected_definitions or []],
        folder_ids=set(entry.folder_ids or []),
        library_id=entry.id,
        audio_url=entry.audio_url,
        us_audio_url=entry.us_audio_url,
        uk_audio_url=entry.uk_audio_url,
        memory=MemoryState.from_fields(fields),
        proficiency_score=entry.proficiency_score or 0,
    )


class ProgressSync:
    """Fire-and-forget progress writer with a reduced-field retry."""

    def __init__(
        self,
        store: ProgressStore,
        executor: Optional[Executor] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.executor = executor
        self.notifier = notifier

    def submit(self, library_id: Any, fields: Mapping[str, Any]) -> None:
        """Queue a write; the caller never waits for it."""
        if library_id is None:
            logger.debug("Word has no library id, skipping progress write")
            return
        fields = dict(fields)
        if self.executor is None:
            self._write(library_id, fields)
        else:
            future = self.executor.submit(self._write, library_id, fields)
            future.add_done_callback(self._log_unexpected_error)

    def _write(self, library_id: Any, fields: Dict[str, Any]) -> None:
        try:
            self.store.update_progress(library_id, fields)
            return
        except SchemaMismatchError as e:
            logger.warning(f"Progress update for {library_id} rejected ({e}), retrying with core fields")
            monitoring.progress_write_failures.labels(error_type="schema_mismatch").inc()
        except ProgressStoreError as e:
            self._report_failure(library_id, e)
            return

        reduced = {key: fields[key] for key in FALLBACK_FIELDS if key in fields}
        try:
            self.store.update_progress(library_id, reduced)
        except ProgressStoreError as e:
            self._report_failure(library_id, e)

    def _report_failure(self, library_id: Any, error: ProgressStoreError) -> None:
        logger.error(f"Failed to update review progress for {library_id}: {error}")
        monitoring.progress_write_failures.labels(error_type=type(error).__name__).inc()
        if self.notifier:
            self.notifier(SAVE_FAILED_MESSAGE, "warning")

    def _log_unexpected_error(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        logger.error(f"Unexpected error while saving review progress: {error!r}")
        monitoring.progress_write_failures.labels(error_type=type(error).__name__).inc()
        if self.notifier:
            self.notifier(SAVE_FAILED_MESSAGE, "warning")
