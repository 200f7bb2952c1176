"""
Conversion job state machine.

    IDLE -> EDITING <-> UNLOCKED -> CONVERTING -> (SUCCESS | FAILED) -> UNLOCKED

``unlocked`` flips to True the first time content becomes non-empty and
never resets for the lifetime of the job.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """Conversion job states"""
    IDLE = "idle"
    EDITING = "editing"
    UNLOCKED = "unlocked"
    CONVERTING = "converting"
    SUCCESS = "success"
    FAILED = "failed"


class InvalidTransition(RuntimeError):
    """A state change the machine does not allow"""

    def __init__(self, current: JobState, target: JobState):
        self.current = current
        self.target = target
        super().__init__(f"Cannot go from {current.value} to {target.value}")


# Allowed transitions
TRANSITIONS = {
    JobState.IDLE: {JobState.EDITING, JobState.UNLOCKED},
    JobState.EDITING: {JobState.EDITING, JobState.UNLOCKED},
    JobState.UNLOCKED: {JobState.UNLOCKED, JobState.CONVERTING},
    JobState.CONVERTING: {JobState.SUCCESS, JobState.FAILED},
    JobState.SUCCESS: {JobState.UNLOCKED, JobState.FAILED},
    JobState.FAILED: {JobState.UNLOCKED},
}


@dataclass
class ConversionJob:
    """One job per session; no concurrent conversions."""
    state: JobState = JobState.IDLE
    unlocked: bool = False
    error_reason: Optional[str] = None

    @property
    def busy(self) -> bool:
        """A conversion is running or its file is still being saved."""
        return self.state in (JobState.CONVERTING, JobState.SUCCESS)

    @property
    def can_convert(self) -> bool:
        return self.unlocked and not self.busy

    def _move(self, target: JobState):
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        if target != self.state:
            logger.debug("Job %s -> %s", self.state.value, target.value)
        self.state = target

    def content_changed(self, is_empty: bool):
        """
        Record an edit or upload.

        The first non-empty content unlocks the job. Edits while a
        conversion runs do not change its state.
        """
        if self.busy:
            if not is_empty:
                self.unlocked = True
            return
        if self.state == JobState.FAILED:
            self._move(JobState.UNLOCKED)

        if not is_empty and not self.unlocked:
            self.unlocked = True
            logger.info("Job unlocked")

        if self.unlocked:
            self._move(JobState.UNLOCKED)
        else:
            self._move(JobState.EDITING)

    def start(self):
        """UNLOCKED -> CONVERTING"""
        self._move(JobState.CONVERTING)
        self.error_reason = None

    def succeed(self):
        self._move(JobState.SUCCESS)

    def fail(self, reason: str):
        self._move(JobState.FAILED)
        self.error_reason = reason

    def finish(self):
        """SUCCESS/FAILED -> UNLOCKED"""
        self._move(JobState.UNLOCKED)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "unlocked": self.unlocked,
            "error_reason": self.error_reason,
        }
