"""
Queue entries for the voice feedback scheduler.
"""

from pydantic import BaseModel, Field

from src.pose.state import FeedbackItem


def feedback_key(item: FeedbackItem) -> str:
    """Stable queue key derived from (text, status)."""
    return f"{item.text}-{item.status}"


class QueuedFeedback(BaseModel):
    """A correction that is currently recurring frame after frame."""
    feedback: FeedbackItem = Field(description="Latest version of the item")
    first_seen_time: float = Field(
        description="Start of the current persistence window; reset after each utterance"
    )
    last_seen_time: float
    spoken_count: int = 0
    created_time: float = Field(
        description="When the item first appeared; never reset while it keeps recurring"
    )

    def persisted(self, now: float) -> float:
        return now - self.first_seen_time

    def total_persisted(self, now: float) -> float:
        return now - self.created_time
