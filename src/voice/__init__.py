"""
Spoken coaching feedback: voting queue, paraphrasing and TTS backends.
"""

from .scheduler import VoiceFeedbackScheduler
from .speech import LoggingSpeech, Pyttsx3Speech, SpeechBackend, VoiceInfo

__all__ = [
    "VoiceFeedbackScheduler",
    "LoggingSpeech",
    "Pyttsx3Speech",
    "SpeechBackend",
    "VoiceInfo",
]
