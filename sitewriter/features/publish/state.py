"""Publish attempt state machine."""

from enum import Enum
from typing import Dict, FrozenSet, List


class PublishState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    INDEXING = "indexing"
    DISPATCHING = "dispatching"
    SUCCEEDED = "succeeded"
    FAILED_VALIDATION = "failed_validation"
    FAILED_UPLOAD = "failed_upload"
    FAILED_INDEXING = "failed_indexing"
    FAILED_DISPATCH = "failed_dispatch"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: FrozenSet[PublishState] = frozenset({
    PublishState.SUCCEEDED,
    PublishState.FAILED_VALIDATION,
    PublishState.FAILED_UPLOAD,
    PublishState.FAILED_INDEXING,
    PublishState.FAILED_DISPATCH,
})

# Validating -> Indexing is the retry path for an asset that is already uploaded
_TRANSITIONS: Dict[PublishState, FrozenSet[PublishState]] = {
    PublishState.IDLE: frozenset({PublishState.VALIDATING}),
    PublishState.VALIDATING: frozenset({
        PublishState.UPLOADING,
        PublishState.DISPATCHING,
        PublishState.INDEXING,
        PublishState.FAILED_VALIDATION,
    }),
    PublishState.UPLOADING: frozenset({PublishState.INDEXING, PublishState.FAILED_UPLOAD}),
    PublishState.INDEXING: frozenset({PublishState.SUCCEEDED, PublishState.FAILED_INDEXING}),
    PublishState.DISPATCHING: frozenset({PublishState.SUCCEEDED, PublishState.FAILED_DISPATCH}),
}


class PublishAttempt:
    """One run through a publish pipeline. Terminal states are final until reset()."""

    def __init__(self, kind: str):
        self.kind = kind
        self.state = PublishState.IDLE
        self.history: List[PublishState] = [PublishState.IDLE]

    def advance(self, target: PublishState) -> PublishState:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            raise RuntimeError(f"Illegal publish transition {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)
        return target

    def reset(self) -> None:
        if not self.state.is_terminal:
            raise RuntimeError(f"Cannot reset a publish attempt in state {self.state.value}")
        self.state = PublishState.IDLE
        self.history.append(PublishState.IDLE)
