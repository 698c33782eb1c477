"""
Configuration for spoken feedback.

Timing thresholds come from ``config/coaching.yaml``; speech-engine
settings come from the environment (``.env``).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from src.utils.io_utils import get_config_section

_project_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_project_root / ".env")

_voice = get_config_section("voice")

# Seconds a correction must persist before it can be spoken
VOTING_THRESHOLD: float = float(_voice.get("voting_threshold", 1.5))
# Seconds of persistence (after being spoken once) that switch to guidance
LONG_DURATION_THRESHOLD: float = float(_voice.get("long_duration_threshold", 10.0))
# Seconds between queue scans
POLL_INTERVAL: float = float(_voice.get("poll_interval", 0.5))
# Number of recent paraphrases excluded per dialogue type
HISTORY_WINDOW: int = int(_voice.get("history_window", 3))

STATUS_PRIORITY: dict[str, int] = {"error": 3, "warning": 2, "good": 1}
SPOKEN_STATUSES = ("warning", "error")

# Speech engine
VOICE_ENABLED: bool = os.environ.get("VOICE_ENABLED", "1") not in ("0", "false", "False")
SPEECH_RATE_FACTOR: float = float(os.environ.get("SPEECH_RATE_FACTOR", "0.95"))
PREFERRED_VOICE_LANG: str = os.environ.get("PREFERRED_VOICE_LANG", "en")
PREFERRED_VOICE_MARKERS: tuple[str, ...] = ("Natural", "Premium")
