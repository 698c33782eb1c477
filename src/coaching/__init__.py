"""
Live coaching session and command-line entry point.

    python -m src.coaching.main analyze --video trainer.mp4
    python -m src.coaching.main train --video trainer.mp4 --segments
"""
