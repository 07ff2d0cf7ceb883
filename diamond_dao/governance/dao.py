"""
Diamond DAO

Deployment-time constructor and public surface of the cut governance gate.
Wires the signer registry, proposal store, voting engines, event log, cut
executor and clock together, and serializes every state-mutating call.
"""

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..clock import Clock, SystemClock
from ..constants import DEFAULT_PROPOSAL_EXPIRATION_SECONDS, STATE_FORMAT_VERSION
from ..logger import get_logger
from .events import EventLog, GovernanceEvent, event_from_dict
from .execution import ExecutorLike, FacetRegistry
from .proposals import ChangeSet, Proposal, ProposalStatus, ProposalStore
from .relinquish import RelinquishVotingEngine
from .signers import SignerRegistry
from .voting import VotingEngine

logger = get_logger(__name__)


class DiamondDAO:
    """
    Multi-signer gate over diamond cuts.

    Args:
        signers:              Authorized signer addresses
        threshold:            Distinct votes needed to execute a cut or relinquish
        admin:                Deployment admin address
        executor:             Cut executor (defaults to an in-memory FacetRegistry)
        clock:                Time source (defaults to SystemClock)
        proposal_expiration:  Seconds a proposal accepts votes after creation

    Every mutating method reads the clock once and holds the instance lock
    for the whole call, so calls never interleave.
    """

    def __init__(
        self,
        signers: Iterable[str],
        threshold: int,
        admin: str,
        *,
        executor: Optional[ExecutorLike] = None,
        clock: Optional[Clock] = None,
        proposal_expiration: float = DEFAULT_PROPOSAL_EXPIRATION_SECONDS,
    ):
        self._registry = SignerRegistry(signers, threshold, admin)
        self._store = ProposalStore(expiration_window=proposal_expiration)
        self._events = EventLog()
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._facets: Optional[FacetRegistry] = None
        if executor is None:
            self._facets = FacetRegistry(self._clock)
            executor = self._facets
        self._relinquish = RelinquishVotingEngine(self._registry, self._events)
        self._voting = VotingEngine(
            self._registry,
            self._store,
            executor,
            relinquish=self._relinquish,
            events=self._events,
        )
        self._lock = threading.RLock()

        logger.info(
            f"DiamondDAO deployed: {self._registry.signer_count} signers, "
            f"threshold {threshold}, expiration {proposal_expiration}s"
        )

    # ── Mutating operations ───────────────────────────────────────────

    def propose_cut(self, signer: str, change_set: ChangeSet) -> int:
        with self._lock:
            now = self._clock.now()
            return self._voting.propose_cut(signer, change_set, now)

    def vote_on_cut(self, signer: str, proposal_id: Any) -> ProposalStatus:
        with self._lock:
            now = self._clock.now()
            return self._voting.vote_on_cut(signer, proposal_id, now)

    def vote_to_relinquish_cut_control(self, signer: str) -> bool:
        with self._lock:
            now = self._clock.now()
            return self._relinquish.vote_to_relinquish_cut_control(signer, now)

    # ── Queries ───────────────────────────────────────────────────────

    def get_proposal(self, proposal_id: Any) -> Proposal:
        return self._voting.get_proposal(proposal_id)

    def get_vote_status(self, proposal_id: Any, signer: Any) -> bool:
        return self._voting.get_vote_status(proposal_id, signer)

    def get_relinquish_vote_status(self, signer: Any) -> bool:
        return self._relinquish.get_relinquish_vote_status(signer)

    def effective_status(self, proposal_id: Any) -> ProposalStatus:
        return self._voting.effective_status(proposal_id, self._clock.now())

    def vote_threshold(self) -> int:
        return self._registry.threshold

    def proposal_expiration(self) -> float:
        """Fixed expiration window in seconds (per-proposal deadlines are on Proposal)."""
        return self._store.expiration_window

    def proposals(self, status: Optional[ProposalStatus] = None) -> List[Proposal]:
        items = self._voting.proposals()
        if status is not None:
            items = [p for p in items if p.status == status]
        return items

    def is_signer(self, identity: Any) -> bool:
        return self._registry.is_signer(identity)

    @property
    def signers(self):
        return self._registry.signers

    @property
    def admin(self) -> str:
        return self._registry.admin

    @property
    def relinquished(self) -> bool:
        return self._relinquish.relinquished

    @property
    def relinquish_vote_count(self) -> int:
        return self._relinquish.vote_count

    @property
    def events(self) -> List[GovernanceEvent]:
        return self._events.history

    def subscribe(self, callback: Callable[[GovernanceEvent], None]) -> Callable[[], None]:
        return self._events.subscribe(callback)

    @property
    def facet_registry(self) -> Optional[FacetRegistry]:
        """The built-in registry, or None when an external executor is wired in."""
        return self._facets

    @property
    def clock(self) -> Clock:
        return self._clock

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": STATE_FORMAT_VERSION,
                "registry": self._registry.to_dict(),
                "store": self._store.to_dict(),
                "relinquish": self._relinquish.to_dict(),
                "facets": self._facets.to_dict() if self._facets is not None else None,
                "events": self._events.to_list(),
            }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        *,
        executor: Optional[ExecutorLike] = None,
        clock: Optional[Clock] = None,
    ) -> "DiamondDAO":
        """Rebuild a DAO from ``to_dict()`` output without re-running any cut."""
        registry = data["registry"]
        clock = clock if clock is not None else SystemClock()
        facets_data = data.get("facets")
        if executor is None and facets_data is not None:
            executor = FacetRegistry.from_dict(facets_data, clock=clock)

        store = ProposalStore.from_dict(data["store"])
        dao = cls(
            registry["signers"],
            registry["threshold"],
            registry["admin"],
            executor=executor,
            clock=clock,
            proposal_expiration=store.expiration_window,
        )
        if isinstance(executor, FacetRegistry):
            dao._facets = executor
        dao._store = store
        dao._voting = VotingEngine(
            dao._registry,
            store,
            executor if executor is not None else dao._facets,
            relinquish=dao._relinquish,
            events=dao._events,
        )
        dao._relinquish.load_state(data.get("relinquish", {}))
        dao._events.restore([event_from_dict(e) for e in data.get("events", [])])
        return dao

    def __repr__(self) -> str:
        return (
            f"<DiamondDAO signers={self._registry.signer_count} "
            f"threshold={self._registry.threshold} proposals={len(self._store)} "
            f"relinquished={self._relinquish.relinquished}>"
        )
