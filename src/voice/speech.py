"""
Text-to-speech backends.

The scheduler depends only on the ``SpeechBackend`` shape: ``speak`` with
end/error callbacks, ``cancel``, and an optional voice query. Any engine
satisfying it can be substituted.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

import pyttsx3

from .config import PREFERRED_VOICE_LANG, PREFERRED_VOICE_MARKERS, SPEECH_RATE_FACTOR

logger = logging.getLogger(__name__)

EndCallback = Callable[[], None]
ErrorCallback = Callable[[Exception], None]


@dataclass(frozen=True)
class VoiceInfo:
    id: str
    name: str
    languages: tuple[str, ...] = field(default_factory=tuple)


class SpeechBackend(Protocol):
    def speak(self, text: str, on_end: EndCallback, on_error: ErrorCallback) -> None:
        """Start speaking; exactly one of the callbacks fires when done."""
        ...

    def cancel(self) -> None:
        ...

    def voices(self) -> Sequence[VoiceInfo]:
        ...

    def set_voice(self, voice_id: str) -> None:
        ...


def select_preferred_voice(
    voices: Sequence[VoiceInfo],
    lang: str = PREFERRED_VOICE_LANG,
    markers: Sequence[str] = PREFERRED_VOICE_MARKERS,
) -> Optional[VoiceInfo]:
    """Prefer a natural/premium voice in ``lang``, else any voice in ``lang``."""
    lang = lang.lower()

    def speaks(voice: VoiceInfo) -> bool:
        if voice.languages:
            return any(code.lower().startswith(lang) for code in voice.languages)
        # Some platforms only encode the language in the voice id (e.g. "...EN-US...").
        return lang in voice.id.lower()

    in_lang = [v for v in voices if speaks(v)]
    for voice in in_lang:
        if any(m in voice.name for m in markers):
            return voice
    return in_lang[0] if in_lang else None


class LoggingSpeech:
    """Backend that only logs utterances (voice disabled or headless runs)."""

    def speak(self, text: str, on_end: EndCallback, on_error: ErrorCallback) -> None:
        logger.info("[voice] %s", text)
        on_end()

    def cancel(self) -> None:
        pass

    def voices(self) -> Sequence[VoiceInfo]:
        return []

    def set_voice(self, voice_id: str) -> None:
        pass


def _decode_languages(raw) -> tuple[str, ...]:
    langs = []
    for lang in raw or []:
        if isinstance(lang, bytes):
            lang = lang.decode("utf-8", errors="ignore").lstrip("\x05")
        langs.append(str(lang))
    return tuple(langs)


class Pyttsx3Speech:
    """pyttsx3 engine driven from a background worker thread.

    Speaking blocks for a second or two, so utterances are queued to a
    daemon thread that owns the engine; callbacks fire on that thread.
    The engine is only ever touched from the worker: ``cancel`` bumps a
    generation counter that the worker checks between words and before
    each queued utterance, and ``set_voice`` is applied before the next one.
    """

    def __init__(self, rate_factor: float = SPEECH_RATE_FACTOR):
        self._rate_factor = rate_factor
        self._queue: "queue.Queue[Optional[tuple[int, str, EndCallback, ErrorCallback]]]" = queue.Queue()
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._generation = 0
        self._speaking_generation: Optional[int] = None
        self._pending_voice: Optional[str] = None
        self._engine = None
        self._voices: list[VoiceInfo] = []
        self._thread = threading.Thread(target=self._worker, name="tts-worker", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=5.0)

    def _worker(self) -> None:
        try:
            self._engine = pyttsx3.init()
            rate = self._engine.getProperty("rate")
            self._engine.setProperty("rate", int(rate * self._rate_factor))
            self._engine.connect("started-word", self._on_word)
            self._voices = [
                VoiceInfo(id=v.id, name=v.name or "", languages=_decode_languages(v.languages))
                for v in self._engine.getProperty("voices")
            ]
        except Exception as exc:
            logger.warning("Could not initialize speech engine: %s", exc)
            self._engine = None
        finally:
            self._ready.set()

        while True:
            job = self._queue.get()
            try:
                if job is None:
                    break
                self._say(*job)
            finally:
                self._queue.task_done()

    def _say(self, generation: int, text: str, on_end: EndCallback, on_error: ErrorCallback) -> None:
        if generation != self._generation:
            logger.debug("Dropping cancelled utterance: %s", text)
            return
        try:
            if self._engine is None:
                raise RuntimeError("Speech engine unavailable.")
            with self._lock:
                voice_id, self._pending_voice = self._pending_voice, None
            if voice_id is not None:
                self._engine.setProperty("voice", voice_id)
            self._speaking_generation = generation
            self._engine.say(text)
            self._engine.runAndWait()
        except Exception as exc:
            logger.warning("Speech error: %s", exc)
            on_error(exc)
        else:
            on_end()
        finally:
            self._speaking_generation = None

    def _on_word(self, name, location, length) -> None:
        # Runs on the worker inside runAndWait.
        if self._speaking_generation is not None and self._speaking_generation != self._generation:
            self._engine.stop()

    def speak(self, text: str, on_end: EndCallback, on_error: ErrorCallback) -> None:
        with self._lock:
            self._queue.put((self._generation, text, on_end, on_error))

    def cancel(self) -> None:
        """Stop the current utterance at the next word and drop queued ones."""
        with self._lock:
            self._generation += 1

    def voices(self) -> Sequence[VoiceInfo]:
        return list(self._voices)

    def set_voice(self, voice_id: str) -> None:
        with self._lock:
            self._pending_voice = voice_id

    def close(self) -> None:
        self.cancel()
        self._queue.put(None)
        self._thread.join(timeout=2.0)
