"""
Governance notifications.

Events are published to the EventLog only after the call that produced
them commits; a call rolled back by a failed cut execution publishes
nothing.
"""

import contextlib
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Iterator, List, Optional

from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GovernanceEvent:
    """Base class; ``name`` matches the contract event name."""
    name: ClassVar[str] = "GovernanceEvent"
    timestamp: float = field(default=0.0, kw_only=True)

    def args(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "timestamp": self.timestamp, **self.args()}


@dataclass(frozen=True)
class NewProposal(GovernanceEvent):
    """Emitted when a signer creates a cut proposal."""
    name: ClassVar[str] = "NewProposal"
    proposal_id: int
    summary: Dict[str, Any]

    def args(self) -> Dict[str, Any]:
        return {"proposalId": self.proposal_id, "summary": self.summary}


@dataclass(frozen=True)
class VoteRegistered(GovernanceEvent):
    """Emitted for every vote on a cut proposal, the proposer's included."""
    name: ClassVar[str] = "VoteRegistered"
    proposal_id: int
    signer: str

    def args(self) -> Dict[str, Any]:
        return {"proposalId": self.proposal_id, "signer": self.signer}


@dataclass(frozen=True)
class ProposalExecuted(GovernanceEvent):
    """Emitted after the cut executor applied the change set."""
    name: ClassVar[str] = "ProposalExecuted"
    proposal_id: int

    def args(self) -> Dict[str, Any]:
        return {"proposalId": self.proposal_id}


@dataclass(frozen=True)
class ProposalFailed(GovernanceEvent):
    """Emitted when a touched proposal is found expired or orphaned by relinquish."""
    name: ClassVar[str] = "ProposalFailed"
    proposal_id: int
    reason: str = "expired"

    def args(self) -> Dict[str, Any]:
        return {"proposalId": self.proposal_id, "reason": self.reason}


@dataclass(frozen=True)
class RelinquishVoteRegistered(GovernanceEvent):
    """Emitted for every vote to relinquish cut control."""
    name: ClassVar[str] = "RelinquishVoteRegistered"
    signer: str

    def args(self) -> Dict[str, Any]:
        return {"signer": self.signer}


@dataclass(frozen=True)
class ControlRelinquished(GovernanceEvent):
    """Emitted once, when the relinquish vote reaches the threshold."""
    name: ClassVar[str] = "ControlRelinquished"


EVENT_TYPES: Dict[str, type] = {
    cls.name: cls
    for cls in (
        NewProposal,
        VoteRegistered,
        ProposalExecuted,
        ProposalFailed,
        RelinquishVoteRegistered,
        ControlRelinquished,
    )
}


def event_from_dict(data: Dict[str, Any]) -> GovernanceEvent:
    """Rebuild an event from ``to_dict()`` output."""
    cls = EVENT_TYPES.get(data.get("event"))
    if cls is None:
        raise ValueError(f"Unknown event type: {data.get('event')!r}")
    timestamp = data.get("timestamp", 0.0)
    if cls is NewProposal:
        return cls(proposal_id=data["proposalId"], summary=data["summary"], timestamp=timestamp)
    if cls is VoteRegistered:
        return cls(proposal_id=data["proposalId"], signer=data["signer"], timestamp=timestamp)
    if cls is ProposalExecuted:
        return cls(proposal_id=data["proposalId"], timestamp=timestamp)
    if cls is ProposalFailed:
        return cls(proposal_id=data["proposalId"], reason=data.get("reason", "expired"), timestamp=timestamp)
    if cls is RelinquishVoteRegistered:
        return cls(signer=data["signer"], timestamp=timestamp)
    return cls(timestamp=timestamp)


# ══════════════════════════════════════════════════════════════════════
#  EVENT LOG
# ══════════════════════════════════════════════════════════════════════

Subscriber = Callable[[GovernanceEvent], None]


class EventLog:
    """
    Ordered history of published events plus synchronous subscribers.

    ``batch()`` buffers events emitted inside it; they are published when
    the outermost batch exits cleanly and dropped if it raises. A failing
    subscriber is logged and skipped; it never undoes a committed call.
    """

    def __init__(self):
        self._history: List[GovernanceEvent] = []
        self._subscribers: List[Subscriber] = []
        self._buffer: Optional[List[GovernanceEvent]] = None

    @contextlib.contextmanager
    def batch(self) -> Iterator[None]:
        if self._buffer is not None:
            yield
            return

        self._buffer = []
        try:
            yield
        except BaseException:
            if self._buffer:
                logger.debug(f"Dropped {len(self._buffer)} uncommitted event(s)")
            self._buffer = None
            raise
        pending, self._buffer = self._buffer, None
        self._publish(pending)

    def emit(self, event: GovernanceEvent) -> None:
        if self._buffer is not None:
            self._buffer.append(event)
        else:
            self._publish([event])

    def _publish(self, events: List[GovernanceEvent]) -> None:
        # History is complete before any subscriber runs
        self._history.extend(events)
        for event in events:
            for callback in list(self._subscribers):
                try:
                    callback(event)
                except Exception:
                    logger.exception(f"Subscriber {callback!r} failed on {event.name}")

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def history(self) -> List[GovernanceEvent]:
        return list(self._history)

    def of_type(self, event_type: type) -> List[GovernanceEvent]:
        return [e for e in self._history if isinstance(e, event_type)]

    def restore(self, events: List[GovernanceEvent]) -> None:
        """Load persisted history without notifying subscribers."""
        self._history = list(events)

    def __len__(self) -> int:
        return len(self._history)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._history]
