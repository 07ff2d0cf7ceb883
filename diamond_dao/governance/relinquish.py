"""
Relinquish Vote

A threshold vote with no payload and no expiry. Once it concludes, the
signers have permanently given up control over diamond cuts: no new
proposal can be created and no pending proposal can execute.
"""

from typing import Any, Dict, FrozenSet, Optional, Set

from ..crypto.address import normalize_address
from ..logger import get_logger
from .errors import AlreadyRelinquishedError, AlreadyVotedError, NotASignerError
from .events import ControlRelinquished, EventLog, RelinquishVoteRegistered
from .signers import SignerRegistry

logger = get_logger(__name__)


class RelinquishVotingEngine:
    """
    Process-wide relinquish vote.

    ``relinquished`` flips to True exactly once and never reverts.
    """

    def __init__(self, signers: SignerRegistry, events: Optional[EventLog] = None):
        self._signers = signers
        self._events = events if events is not None else EventLog()
        self._voters: Set[str] = set()
        self._relinquished = False

    # ── Vote ──────────────────────────────────────────────────────────

    def vote_to_relinquish_cut_control(self, signer: str, now: float = 0.0) -> bool:
        """
        Register *signer*'s vote to relinquish cut control.

        Returns True if this vote concluded the relinquish vote.
        """
        if not self._signers.is_signer(signer):
            raise NotASignerError(signer)
        if self._relinquished:
            raise AlreadyRelinquishedError()

        voter = self._signers.canonical(signer)
        if voter in self._voters:
            raise AlreadyVotedError(voter)

        with self._events.batch():
            self._voters.add(voter)
            self._events.emit(RelinquishVoteRegistered(signer=voter, timestamp=now))
            logger.info(
                f"Relinquish vote: {voter} "
                f"({len(self._voters)}/{self._signers.threshold})"
            )

            if len(self._voters) >= self._signers.threshold:
                self._relinquished = True
                self._events.emit(ControlRelinquished(timestamp=now))
                logger.warning("Cut control RELINQUISHED: no further diamond cuts possible")
                return True
        return False

    # ── Queries ───────────────────────────────────────────────────────

    def get_relinquish_vote_status(self, signer: Any) -> bool:
        if not self._signers.is_signer(signer):
            return False
        return normalize_address(signer) in self._voters

    @property
    def relinquished(self) -> bool:
        return self._relinquished

    @property
    def voters(self) -> FrozenSet[str]:
        return frozenset(self._voters)

    @property
    def vote_count(self) -> int:
        return len(self._voters)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voters": sorted(self._voters),
            "voteCount": len(self._voters),
            "relinquished": self._relinquished,
        }

    def load_state(self, data: Dict[str, Any]) -> None:
        """Restore persisted votes; does not publish events."""
        self._voters = {normalize_address(v) for v in data.get("voters", [])}
        self._relinquished = bool(data.get("relinquished", False))

    def __repr__(self) -> str:
        return (
            f"<RelinquishVotingEngine votes={len(self._voters)}/"
            f"{self._signers.threshold} relinquished={self._relinquished}>"
        )
