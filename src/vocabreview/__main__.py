"""Run a review session in the terminal."""
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from vocabreview.config import ensure_directories, settings
from vocabreview.logging_config import setup_logging
from vocabreview.models.base import init_db
from vocabreview.models.review_models import ReviewMode, SessionPhase
from vocabreview.monitoring import start_monitoring
from vocabreview.services.audio_service import PronunciationService
from vocabreview.services.keyboard import ENTER, KeyboardRouter
from vocabreview.services.library_service import word_from_dict
from vocabreview.services.progress_store import LibraryProgressStore, ProgressSync
from vocabreview.services.review_session import ReviewSessionController

logger = logging.getLogger(__name__)

QUIT = "q"


def import_words(store: LibraryProgressStore, path: Path) -> int:
    """Add the words listed in a JSON file to the library."""
    with open(path, encoding="utf-8") as f:
        records = json.load(f)
    for record in records:
        store.add_word(word_from_dict(record))
    logger.info(f"Imported {len(records)} words from {path}")
    return len(records)


def run_session(
    controller: ReviewSessionController,
    keyboard: KeyboardRouter,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    """Drive the session through the keyboard contract until it ends."""
    while controller.state is not None:
        prompt = controller.current_prompt
        word = prompt.word
        write(f"\n[{prompt.index + 1}/{prompt.total}]")

        if prompt.mode == ReviewMode.FLASHCARD:
            write(word.word)
            if read("Press Enter to reveal (q to quit) ").strip() == QUIT:
                controller.abandon()
                return
            keyboard.dispatch(ENTER)
            write(f"{prompt.entry.definition} {prompt.entry.translation}".strip())
            while controller.phase == SessionPhase.REVEALED:
                key = read("Grade 1-4 (again/hard/good/easy): ").strip()
                if key == QUIT:
                    controller.abandon()
                    return
                keyboard.dispatch(key)
            continue

        if prompt.mode == ReviewMode.CLOZE:
            write(f"{prompt.masked_sentence}\n{prompt.translation}")
        elif prompt.mode == ReviewMode.SPELLING:
            write(prompt.translation)
        else:
            write("(listen to the pronunciation)")

        while controller.phase == SessionPhase.PROMPTING:
            if controller.state.answer_hint:
                write(f"Incorrect. The answer is: {controller.state.answer_hint}")
            answer = read("> ")
            if answer.strip() == QUIT:
                controller.abandon()
                return
            controller.type_answer(answer)
            keyboard.dispatch(ENTER)

        result = controller.state.last_result
        write(f"{controller.state.feedback.value}: {word.word}")
        if result.correct_context_word and result.correct_context_word.lower() != word.word.lower():
            write(f"Used in the sentence as: {result.correct_context_word}")
        read("Press Enter for the next word ")
        keyboard.dispatch(ENTER)


def main() -> None:
    ensure_directories()
    setup_logging("Starting vocabreview ...")
    init_db()
    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)

    store = LibraryProgressStore()
    import_file = os.getenv("VOCAB_IMPORT_FILE")
    if import_file:
        import_words(store, Path(import_file))

    words = store.load_words()
    folder_ids = sorted({folder for word in words for folder in word.folder_ids})
    modes = ", ".join(mode.value for mode in ReviewMode)

    with ThreadPoolExecutor(max_workers=1) as executor:
        keyboard = KeyboardRouter()
        controller = ReviewSessionController(
            words,
            progress=ProgressSync(store, executor=executor, notifier=_print_notice),
            audio=PronunciationService(executor=executor, notifier=_print_notice),
            keyboard=keyboard,
            notifier=_print_notice,
            all_folder_ids=folder_ids,
        )
        mode = input(f"Mode ({modes}) [flashcard]: ").strip() or ReviewMode.FLASHCARD.value
        folders = input(f"Folders ({', '.join(folder_ids) or 'none'}) [all]: ").strip()
        selection = [folder.strip() for folder in folders.split(",")] if folders else "all"
        try:
            if controller.start_session(selection, mode):
                run_session(controller, keyboard)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, abandoning session")
            controller.abandon()


def _print_notice(message: str, level: str = "info") -> None:
    print(f"[{level}] {message}")


if __name__ == "__main__":
    main()
