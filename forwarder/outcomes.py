from enum import Enum
from typing import Optional


class DialOutcome(str, Enum):
    """Result of a single <Dial> attempt as reported by Twilio's DialCallStatus."""

    CONNECTED = "connected"
    NO_ANSWER = "no-answer"
    BUSY = "busy"
    FAILED = "failed"
    CANCELED = "canceled"
    OTHER = "other"

    @property
    def is_connected(self) -> bool:
        return self is DialOutcome.CONNECTED


# Twilio reports "completed" once a bridged leg hangs up, "answered" while it is still up
_TWILIO_STATUS_MAP = {
    "completed": DialOutcome.CONNECTED,
    "answered": DialOutcome.CONNECTED,
    "no-answer": DialOutcome.NO_ANSWER,
    "busy": DialOutcome.BUSY,
    "failed": DialOutcome.FAILED,
    "canceled": DialOutcome.CANCELED,
}


def classify_outcome(dial_status: Optional[str]) -> DialOutcome:
    """
    Map a raw DialCallStatus value onto a DialOutcome.

    Empty, missing, or unrecognized values become OTHER, which the cascade
    treats like any other failed attempt.
    """
    if not dial_status:
        return DialOutcome.OTHER
    return _TWILIO_STATUS_MAP.get(dial_status.strip().lower(), DialOutcome.OTHER)
