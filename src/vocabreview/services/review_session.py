"""Review session state machine."""
import logging
import random
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from vocabreview import monitoring
from vocabreview.config import ReviewSettings, settings
from vocabreview.exceptions import SessionStateError
from vocabreview.models.review_models import (
    AnswerResult,
    CardPrompt,
    ClozeAnswers,
    Feedback,
    ReviewMode,
    SessionPhase,
    SessionSummary,
    VocabularyWord,
)
from vocabreview.services.answer_evaluator import GRADE_AGAIN, AnswerEvaluator
from vocabreview.services.audio_service import PLAYBACK_FAILED_MESSAGE, PronunciationService
from vocabreview.services.batch_selector import build_review_batch
from vocabreview.services.cloze_resolver import ClozeAnswerResolver
from vocabreview.services.keyboard import ENTER, GRADE_KEYS, SPACE, KeyboardRouter
from vocabreview.services.library_service import (
    filter_words_by_folders,
    pick_review_entry,
    preferred_audio_url,
    split_example_lines,
)
from vocabreview.services.morphology import get_analyzer
from vocabreview.services.proficiency import ProficiencyScorer
from vocabreview.services.progress_store import ProgressSync
from vocabreview.services.scheduling import FsrsEngine, SchedulingAdapter

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]

EMPTY_POOL_MESSAGE = "No words available for review."
COMPLETE_MESSAGE = "Review complete!"


def _log_notifier(message: str, level: str = "info") -> None:
    logger.log(logging.WARNING if level == "warning" else logging.INFO, message)


@dataclass
class ReviewSessionState:
    """Everything held for the lifetime of one session."""
    queue: List[VocabularyWord]
    mode: ReviewMode
    settings: ReviewSettings
    index: int = 0
    phase: SessionPhase = SessionPhase.PROMPTING
    typed_answer: str = ""
    feedback: Optional[Feedback] = None
    last_result: Optional[AnswerResult] = None
    answer_hint: str = ""
    has_mistake: bool = False
    # Grade computed for a typed answer, applied once when the card is left
    pending_grade: Optional[int] = None
    prompt: Optional[CardPrompt] = None
    cloze: Optional[ClozeAnswers] = None
    grades: Dict[str, int] = field(default_factory=dict)
    mistakes: int = 0


class ReviewSessionController:
    """Runs one review session: prompt, check or reveal, grade, advance."""

    def __init__(
        self,
        words: Union[Sequence[VocabularyWord], Callable[[], Sequence[VocabularyWord]]],
        review_settings: ReviewSettings = settings.review,
        evaluator: Optional[AnswerEvaluator] = None,
        cloze_resolver: Optional[ClozeAnswerResolver] = None,
        scheduler: Optional[SchedulingAdapter] = None,
        scorer: Optional[ProficiencyScorer] = None,
        progress: Optional[ProgressSync] = None,
        audio: Optional[PronunciationService] = None,
        keyboard: Optional[KeyboardRouter] = None,
        notifier: Optional[Notifier] = None,
        all_folder_ids: Iterable[str] = (),
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.words = words
        self.review_settings = review_settings
        self.evaluator = evaluator or AnswerEvaluator(
            review_settings.typo_min_length, review_settings.typo_max_distance
        )
        self.cloze_resolver = cloze_resolver or ClozeAnswerResolver(
            get_analyzer(review_settings.morphology), review_settings.blank_token
        )
        self.scheduler = scheduler or SchedulingAdapter(
            FsrsEngine(review_settings.request_retention),
            fuzz_min_scheduled_days=review_settings.fuzz_min_scheduled_days,
            fuzz_low=review_settings.fuzz_low,
            fuzz_high=review_settings.fuzz_high,
        )
        self.scorer = scorer or ProficiencyScorer(
            review_settings.proficiency_neutral_grade,
            review_settings.proficiency_max,
            review_settings.first_recall_floor,
        )
        self.progress = progress
        self.audio = audio
        self.keyboard = keyboard
        self.notifier = notifier or _log_notifier
        self.all_folder_ids = list(all_folder_ids)
        self.rng = rng or random.Random()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.state: Optional[ReviewSessionState] = None
        self.summary: Optional[SessionSummary] = None
        self._idle_phase = SessionPhase.IDLE

    # Read-only view

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase if self.state else self._idle_phase

    @property
    def current_prompt(self) -> Optional[CardPrompt]:
        return self.state.prompt if self.state else None

    @property
    def current_word(self) -> Optional[VocabularyWord]:
        return self.state.queue[self.state.index] if self.state else None

    @property
    def is_revealed(self) -> bool:
        return self.phase in (SessionPhase.REVEALED, SessionPhase.AWAITING_NEXT)

    @property
    def is_retrying(self) -> bool:
        """A wrong answer was given and the card waits for a new attempt."""
        return bool(self.state and self.state.phase == SessionPhase.PROMPTING and self.state.has_mistake)

    # Entry points

    def start_session(
        self,
        folder_selection: Union[str, Iterable[str]],
        mode: Union[ReviewMode, str],
    ) -> Optional[CardPrompt]:
        """Build the queue and show the first card; None when nothing is eligible."""
        mode = ReviewMode(mode)
        if self.state is not None:
            self.abandon()

        pool = self.words() if callable(self.words) else self.words
        eligible = filter_words_by_folders(pool, folder_selection, self.all_folder_ids)
        if not eligible:
            logger.info(f"No eligible words for folders {folder_selection!r}")
            self.notifier(EMPTY_POOL_MESSAGE, "info")
            return None

        queue = build_review_batch(eligible, self.review_settings.batch_size, self.clock(), self.rng)
        self.state = ReviewSessionState(queue=queue, mode=mode, settings=self.review_settings)
        self.summary = None
        if self.keyboard:
            self.keyboard.add_listener(self.handle_key)

        monitoring.review_sessions.labels(mode=mode.value).inc()
        monitoring.session_cards.observe(len(queue))
        logger.info(f"Started {mode.value} session with {len(queue)} of {len(eligible)} words")

        self._enter_card()
        return self.state.prompt

    def type_answer(self, text: str) -> None:
        """Live typing clears a previous "incorrect" and the hint."""
        state = self._require_phase(SessionPhase.PROMPTING)
        state.typed_answer = text
        if state.feedback == Feedback.INCORRECT:
            state.feedback = None
        state.answer_hint = ""

    def submit_answer(self, text: Optional[str] = None) -> AnswerResult:
        """Check a typed answer in spelling, cloze or dictation mode."""
        state = self._require_phase(SessionPhase.PROMPTING)
        if not state.mode.is_strict:
            raise SessionStateError("Flashcards are revealed, not answered")
        if text is not None:
            state.typed_answer = text

        word = self.current_word
        if state.mode == ReviewMode.CLOZE:
            result = self.cloze_resolver.grade(
                state.typed_answer, state.prompt.sentence, word.word, self.evaluator
            )
        else:
            result = self.evaluator.evaluate(state.typed_answer, word.word)
        monitoring.answers_checked.labels(mode=state.mode.value, feedback=result.feedback.value).inc()

        if result.allow_retry:
            state.feedback = Feedback.INCORRECT
            state.last_result = result
            state.typed_answer = ""
            state.answer_hint = word.word
            state.pending_grade = None
            if not state.has_mistake:
                state.mistakes += 1
            state.has_mistake = True
            return result

        if state.has_mistake:
            # Only a first-attempt answer earns more than Again
            result = AnswerResult(
                grade=GRADE_AGAIN,
                feedback=Feedback.INCORRECT,
                allow_retry=False,
                correct_context_word=result.correct_context_word,
            )

        state.feedback = result.feedback.display
        state.last_result = result
        state.answer_hint = ""
        state.pending_grade = result.grade
        state.phase = SessionPhase.AWAITING_NEXT
        self._play_current()
        return result

    def reveal(self) -> CardPrompt:
        """Flip a flashcard."""
        state = self._require_phase(SessionPhase.PROMPTING)
        if state.mode.is_strict:
            raise SessionStateError(f"{state.mode.value} cards are revealed by checking the answer")
        state.phase = SessionPhase.REVEALED
        self._play_current()
        return state.prompt

    def commit_grade(self, grade: int) -> Optional[CardPrompt]:
        """Self-grade a revealed flashcard and move on."""
        state = self._require_phase(SessionPhase.REVEALED)
        if state.mode.is_strict:
            raise SessionStateError("Typed answers are graded automatically")
        if grade not in (1, 2, 3, 4):
            raise ValueError(f"Grade must be between 1 and 4, got {grade}")
        self._commit(self.current_word, grade)
        return self._next_card()

    def advance(self) -> Optional[CardPrompt]:
        """Apply the pending grade and show the next card."""
        state = self._require_phase(SessionPhase.AWAITING_NEXT)
        grade, state.pending_grade = state.pending_grade, None
        if grade is not None:
            self._commit(self.current_word, grade)
        return self._next_card()

    def abandon(self) -> None:
        """Drop the session without committing anything further."""
        if self.state is None:
            return
        logger.info(f"Abandoned session at card {self.state.index + 1} of {len(self.state.queue)}")
        self._teardown()
        self._idle_phase = SessionPhase.IDLE

    def replay_audio(self) -> None:
        self._require_active()
        self._play_current()

    def handle_key(self, key: str, repeat: bool = False) -> bool:
        """Keyboard contract; returns True when the key was used."""
        state = self.state
        if state is None or repeat:
            return False

        if key in GRADE_KEYS:
            if state.phase == SessionPhase.REVEALED and state.mode == ReviewMode.FLASHCARD:
                self.commit_grade(int(key))
                return True
            return False

        if state.phase == SessionPhase.PROMPTING:
            if state.mode == ReviewMode.FLASHCARD and key in (ENTER, SPACE):
                self.reveal()
                return True
            if state.mode.is_strict and key == ENTER:
                if self.is_retrying and not state.typed_answer.strip():
                    return False
                self.submit_answer()
                return True
            return False

        if state.phase == SessionPhase.AWAITING_NEXT and key == ENTER:
            self.advance()
            return True
        return False

    # Internals

    def _require_active(self) -> ReviewSessionState:
        if self.state is None:
            raise SessionStateError("No review session in progress")
        return self.state

    def _require_phase(self, phase: SessionPhase) -> ReviewSessionState:
        state = self._require_active()
        if state.phase != phase:
            raise SessionStateError(f"Expected phase {phase.value}, session is {state.phase.value}")
        return state

    def _enter_card(self) -> None:
        state = self.state
        word = state.queue[state.index]
        entry = pick_review_entry(word, self.rng)
        lines = split_example_lines(entry.example)
        sentence = lines[0] if lines else ""
        translation = lines[1] if len(lines) > 1 else entry.translation

        state.phase = SessionPhase.PROMPTING
        state.typed_answer = ""
        state.feedback = None
        state.last_result = None
        state.answer_hint = ""
        state.has_mistake = False
        state.pending_grade = None
        state.cloze = None

        masked_sentence = ""
        if state.mode == ReviewMode.CLOZE:
            state.cloze = self.cloze_resolver.resolve(sentence, word.word)
            masked_sentence = state.cloze.masked_sentence
        elif state.mode == ReviewMode.SPELLING:
            translation = entry.translation or translation

        state.prompt = CardPrompt(
            word=word,
            mode=state.mode,
            index=state.index,
            total=len(state.queue),
            entry=entry,
            sentence=sentence,
            masked_sentence=masked_sentence,
            translation=translation,
        )

        if state.mode == ReviewMode.DICTATION:
            self._play_current()

    def _play_current(self) -> None:
        if self.audio is None:
            return
        word = self.current_word
        try:
            self.audio.play(word.word, preferred_audio_url(word, self.state.settings.preferred_accent))
        except Exception as e:
            logger.error(f"Pronunciation request for {word.word!r} failed: {e}")
            self.notifier(PLAYBACK_FAILED_MESSAGE, "warning")

    def _commit(self, word: VocabularyWord, grade: int) -> None:
        now = self.clock()
        memory = self.scheduler.review(word.memory, grade, now)
        score = self.scorer.score(word.proficiency_score, grade)

        word.memory = memory
        word.proficiency_score = score
        self.state.grades[word.id] = grade
        monitoring.cards_graded.labels(mode=self.state.mode.value, grade=str(grade)).inc()
        logger.debug(f"Committed grade {grade} for {word.word!r}, proficiency {score}")

        if self.progress:
            fields = memory.to_fields()
            fields["next_review"] = fields["due"]
            fields["proficiency_score"] = score
            self.progress.submit(word.library_id, fields)

    def _next_card(self) -> Optional[CardPrompt]:
        state = self.state
        if state.index < len(state.queue) - 1:
            state.index += 1
            self._enter_card()
            return state.prompt
        self._complete()
        return None

    def _complete(self) -> None:
        state = self.state
        if state.pending_grade is not None:
            self._commit(self.current_word, state.pending_grade)
            state.pending_grade = None
        self.summary = SessionSummary(
            mode=state.mode,
            total=len(state.queue),
            grades=dict(state.grades),
            mistakes=state.mistakes,
        )
        logger.info(f"Completed {state.mode.value} session: {len(state.grades)} cards graded")
        self._teardown()
        self._idle_phase = SessionPhase.COMPLETE
        self.notifier(COMPLETE_MESSAGE, "info")

    def _teardown(self) -> None:
        if self.keyboard:
            self.keyboard.remove_listener(self.handle_key)
        self.state = None
