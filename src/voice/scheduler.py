"""
Voice feedback scheduler.

Decides which correction to say out loud, and when, from the feedback
list regenerated every frame:

1. Voting: only warnings/errors are queued, keyed by (text, status). An
   item must keep recurring for ``voting_threshold`` seconds before it is
   eligible; items missing from a cycle are dropped immediately.
2. Priority: every ``poll_interval`` the eligible item with the highest
   priority (error > warning, then longest waiting) is spoken, unless an
   utterance is already playing.
3. Variation: phrasing rotates through paraphrases, skipping the last few
   used for that category.
4. Escalation: an item still present ``long_duration_threshold`` seconds
   after it first appeared, and already spoken, gets a longer guidance
   sentence instead.

When an utterance ends its persistence window restarts, so the same
correction cannot be repeated back to back.
"""

import logging
import random
import threading
import time
from collections import deque
from typing import Callable, Iterable, Optional

from src.pose.state import FeedbackItem

from .config import (
    HISTORY_WINDOW,
    LONG_DURATION_THRESHOLD,
    POLL_INTERVAL,
    SPOKEN_STATUSES,
    STATUS_PRIORITY,
    VOTING_THRESHOLD,
)
from .dialogues import DIALOGUES, guidance_for, identify_dialogue_type
from .speech import SpeechBackend, select_preferred_voice
from .state import QueuedFeedback, feedback_key

logger = logging.getLogger(__name__)


def feedback_priority(item: FeedbackItem) -> int:
    if item.priority is not None:
        return item.priority
    return STATUS_PRIORITY.get(item.status, 1)


class VoiceFeedbackScheduler:
    """Turns a stream of feedback lists into occasional, non-overlapping speech.

    Args:
        speech: Text-to-speech backend.
        clock: Time source in seconds; injectable for tests.
        rng: Random generator for paraphrase selection.
        enabled: Accept feedback immediately without starting the polling
            thread (call ``process_queue`` yourself); ``set_enabled(True)``
            enables and starts polling.
    """

    def __init__(
        self,
        speech: SpeechBackend,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        voting_threshold: float = VOTING_THRESHOLD,
        long_duration_threshold: float = LONG_DURATION_THRESHOLD,
        poll_interval: float = POLL_INTERVAL,
        history_window: int = HISTORY_WINDOW,
        enabled: bool = False,
    ):
        self.speech = speech
        self.voting_threshold = voting_threshold
        self.long_duration_threshold = long_duration_threshold
        self.poll_interval = poll_interval
        self.history_window = history_window

        self._clock = clock
        self._rng = rng or random.Random()
        self._enabled = enabled
        self._queue: dict[str, QueuedFeedback] = {}
        self._history: dict[str, deque] = {}
        self._speaking = False
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._poller: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._enabled

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    def set_enabled(self, enabled: bool) -> None:
        """Enable (start polling) or disable (stop, clear queue, cancel speech)."""
        self._enabled = enabled
        if enabled and self._poller is None:
            self._choose_voice()
            self._start_polling()
        elif not enabled:
            self._stop_polling()
            self._cancel_speech()

    def cleanup(self) -> None:
        self.set_enabled(False)
        with self._lock:
            self._history.clear()

    def _choose_voice(self) -> None:
        try:
            voice = select_preferred_voice(self.speech.voices())
        except Exception as exc:
            logger.warning("Voice query failed: %s", exc)
            return
        if voice is not None:
            self.speech.set_voice(voice.id)
            logger.info("Using voice '%s'", voice.name)

    def _start_polling(self) -> None:
        self._stop.clear()
        self._poller = threading.Thread(target=self._poll_loop, name="voice-scheduler", daemon=True)
        self._poller.start()

    def _stop_polling(self) -> None:
        self._stop.set()
        if self._poller is not None and self._poller is not threading.current_thread():
            self._poller.join(timeout=2.0)
        self._poller = None
        with self._lock:
            self._queue.clear()

    def _poll_loop(self) -> None:
        while not self._stop.wait(self.poll_interval):
            try:
                self.process_queue()
            except Exception:
                logger.exception("Voice queue processing failed")

    def _cancel_speech(self) -> None:
        try:
            self.speech.cancel()
        except Exception as exc:
            logger.warning("Speech cancel failed: %s", exc)
        with self._lock:
            self._speaking = False

    # ------------------------------------------------------------------
    # Voting queue
    # ------------------------------------------------------------------

    def pending(self) -> dict[str, QueuedFeedback]:
        with self._lock:
            return {k: v.model_copy() for k, v in self._queue.items()}

    def add_feedback(self, items: Iterable[FeedbackItem], now: Optional[float] = None) -> None:
        """Record this cycle's feedback; corrections not seen this cycle are dropped."""
        if not self._enabled:
            return
        now = self._clock() if now is None else now

        with self._lock:
            active: set[str] = set()
            for item in items:
                if item.status not in SPOKEN_STATUSES:
                    continue
                key = feedback_key(item)
                active.add(key)
                queued = self._queue.get(key)
                if queued is None:
                    self._queue[key] = QueuedFeedback(
                        feedback=item,
                        first_seen_time=now,
                        last_seen_time=now,
                        created_time=now,
                    )
                else:
                    queued.last_seen_time = now
                    queued.feedback = item

            for key in [k for k in self._queue if k not in active]:
                del self._queue[key]

    def process_queue(self, now: Optional[float] = None) -> Optional[str]:
        """Speak the most urgent eligible correction, if nothing is playing.

        Returns the text handed to the speech backend, or None.
        """
        if not self._enabled:
            return None
        now = self._clock() if now is None else now

        with self._lock:
            if self._speaking:
                return None

            eligible = [
                (key, q) for key, q in self._queue.items()
                if q.persisted(now) >= self.voting_threshold
            ]
            if not eligible:
                return None

            eligible.sort(key=lambda kq: (-feedback_priority(kq[1].feedback), kq[1].first_seen_time))
            key, queued = eligible[0]

            text = self._compose(queued, now)
            if not text:
                return None
            self._speaking = True

        logger.debug("Speaking: %s", text)
        try:
            self.speech.speak(
                text,
                on_end=lambda: self._on_speech_end(key),
                on_error=lambda exc: self._on_speech_error(key, exc),
            )
        except Exception as exc:
            self._on_speech_error(key, exc)
            return None
        return text

    # ------------------------------------------------------------------
    # Phrasing
    # ------------------------------------------------------------------

    def _compose(self, queued: QueuedFeedback, now: float) -> str:
        if queued.spoken_count > 0 and queued.total_persisted(now) >= self.long_duration_threshold:
            guidance = guidance_for(queued.feedback)
            return guidance or queued.feedback.text
        return self.dialogue_variation(queued.feedback)

    def dialogue_variation(self, item: FeedbackItem) -> str:
        """Pick a paraphrase not used in the last ``history_window`` picks."""
        dialogue_type = identify_dialogue_type(item)
        variations = DIALOGUES.get(dialogue_type) if dialogue_type else None
        if not variations:
            return item.text

        with self._lock:
            history = self._history.setdefault(dialogue_type, deque(maxlen=self.history_window))
            available = [i for i in range(len(variations)) if i not in history]
            if not available:
                history.clear()
                available = list(range(len(variations)))
            index = self._rng.choice(available)
            history.append(index)
        return variations[index]

    # ------------------------------------------------------------------
    # Speech callbacks
    # ------------------------------------------------------------------

    def _on_speech_end(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            self._speaking = False
            queued = self._queue.get(key)
            if queued is not None:
                queued.spoken_count += 1
                queued.first_seen_time = now

    def _on_speech_error(self, key: str, exc: Exception) -> None:
        logger.warning("Speech failed for '%s': %s", key, exc)
        with self._lock:
            self._speaking = False
