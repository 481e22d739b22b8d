"""Pronunciation playback requests."""
import logging
import re
from concurrent.futures import Executor
from pathlib import Path
from typing import Callable, Optional

from gtts import gTTS

from vocabreview import monitoring
from vocabreview.config import settings

logger = logging.getLogger(__name__)

Player = Callable[[str], None]
Notifier = Callable[[str, str], None]

PLAYBACK_FAILED_MESSAGE = "Pronunciation could not be played."


def _log_player(source: str) -> None:
    logger.info(f"Playing pronunciation: {source}")


class PronunciationService:
    """Plays a word's recording, synthesizing one with gTTS when none is given."""

    def __init__(
        self,
        player: Optional[Player] = None,
        executor: Optional[Executor] = None,
        audio_dir: Optional[Path] = None,
        language: str = settings.audio.language,
        enabled: bool = settings.audio.enabled,
        notifier: Optional[Notifier] = None,
    ):
        self.player = player or _log_player
        self.executor = executor
        self.audio_dir = Path(audio_dir or settings.paths.pronunciations_dir)
        self.language = language
        self.enabled = enabled
        self.notifier = notifier

    def play(self, word: str, preferred_audio_url: Optional[str] = None) -> None:
        """Request playback without waiting for it."""
        if not self.enabled or not word:
            return
        if self.executor is None:
            self._play(word, preferred_audio_url)
        else:
            self.executor.submit(self._play, word, preferred_audio_url)

    def _play(self, word: str, preferred_audio_url: Optional[str]) -> None:
        try:
            if preferred_audio_url:
                monitoring.audio_requests.labels(source="url").inc()
                self.player(preferred_audio_url)
                return

            path = self.generate_pronunciation(word)
            if path:
                monitoring.audio_requests.labels(source="tts").inc()
                self.player(path)
        except Exception as e:
            logger.error(f"Error playing pronunciation for word: {word}, error: {e}")
            monitoring.audio_requests.labels(source="error").inc()
            if self.notifier:
                self.notifier(PLAYBACK_FAILED_MESSAGE, "warning")

    def generate_pronunciation(self, word: str) -> str:
        """Synthesize an mp3 for the word, reusing an earlier one."""
        path = self.audio_dir / f"{self._sanitize_filename(word)}.mp3"
        if path.exists():
            return str(path)
        try:
            self.audio_dir.mkdir(parents=True, exist_ok=True)
            tts = gTTS(text=word, lang=self.language)
            tts.save(str(path))
            logger.info(f"Pronunciation generated for word: {word}, file: {path.name}")
            return str(path)
        except Exception as e:
            logger.error(f"Error generating pronunciation for word: {word}, error: {e}")
            return ""

    @staticmethod
    def _sanitize_filename(word: str) -> str:
        """Sanitize word for use in filename."""
        return re.sub(r"[^a-zA-Z0-9]", "_", word.lower())
