"""
Multi-Signer Cut Voting Engine

Implements:
  - Proposal creation by signers (the proposer casts the first vote)
  - One vote per signer per proposal
  - Execution as soon as votes ≥ threshold, atomically with the status change
  - Lazy expiry: a vote touching an expired proposal marks it FAILED
  - Rejection of every cut once control has been relinquished
"""

from typing import Any, Callable, List, Optional

from ..logger import get_logger
from .errors import (
    AlreadyVotedError,
    CutControlRelinquishedError,
    ExecutionFailedError,
    InvalidChangeSetError,
    NotASignerError,
    ProposalAlreadyResolvedError,
    ProposalExpiredError,
)
from .events import EventLog, NewProposal, ProposalExecuted, ProposalFailed, VoteRegistered
from .execution import ExecutorLike, resolve_executor
from .proposals import ChangeSet, Proposal, ProposalStatus, ProposalStore
from .relinquish import RelinquishVotingEngine
from .signers import SignerRegistry

logger = get_logger(__name__)


FAILURE_EXPIRED = "expired"
FAILURE_RELINQUISHED = "relinquished"


class VotingEngine:
    """
    Proposal / vote / expire / execute state machine.

    Per proposal:
        PENDING --[votes ≥ threshold before expiry]--> EXECUTED
        PENDING --[vote call at or after expires_at]--> FAILED
        PENDING --[vote call after control relinquished]--> FAILED

    The engine is the only writer of its ProposalStore. Each public call is
    a transaction: store mutations are journaled and notifications buffered
    until the call commits. The one deliberate exception is the FAILED
    transition, which commits even though the call then raises.
    """

    def __init__(
        self,
        signers: SignerRegistry,
        store: ProposalStore,
        executor: ExecutorLike,
        relinquish: Optional[RelinquishVotingEngine] = None,
        events: Optional[EventLog] = None,
    ):
        self._signers = signers
        self._store = store
        self._apply: Callable[[ChangeSet], Optional[bool]] = resolve_executor(executor)
        self._events = events if events is not None else EventLog()
        self._relinquish = (
            relinquish if relinquish is not None
            else RelinquishVotingEngine(signers, self._events)
        )

    # ── Propose ───────────────────────────────────────────────────────

    def propose_cut(self, signer: str, change_set: ChangeSet, now: float) -> int:
        """
        Create a cut proposal and register the proposer's vote.

        With a threshold of 1 the proposal executes within this call. If
        that execution fails nothing is created and ExecutionFailedError
        is raised.
        """
        if self._relinquish.relinquished:
            raise CutControlRelinquishedError()
        if not self._signers.is_signer(signer):
            raise NotASignerError(signer)
        if not isinstance(change_set, ChangeSet):
            raise InvalidChangeSetError(
                f"Expected ChangeSet, got {type(change_set).__name__}"
            )

        proposer = self._signers.canonical(signer)
        with self._events.batch(), self._store.atomic():
            pid = self._store.create(proposer, change_set, now)
            proposal = self._store.get(pid)
            self._events.emit(
                NewProposal(proposal_id=pid, summary=change_set.summary(), timestamp=now)
            )
            logger.info(
                f"Proposal #{pid} created by {proposer}: "
                f"{len(change_set.cuts)} cut(s) [{change_set.digest[:10]}], "
                f"expires at {proposal.expires_at:.0f}"
            )
            self._register_vote(proposal, proposer, now)
        return pid

    # ── Vote ──────────────────────────────────────────────────────────

    def vote_on_cut(self, signer: str, proposal_id: Any, now: float) -> ProposalStatus:
        """
        Vote for a pending proposal; returns its status after the vote.

        Checks, first failure wins:
            1. signer                 → NotASignerError
            2. proposal exists        → ProposalNotFoundError
            3. still PENDING          → ProposalAlreadyResolvedError
            4. control not relinquished → FAILED, then CutControlRelinquishedError
            5. not expired            → FAILED, then ProposalExpiredError
            6. first vote by signer   → AlreadyVotedError
        """
        if not self._signers.is_signer(signer):
            raise NotASignerError(signer)

        proposal = self._store.get(proposal_id)
        if not proposal.is_pending:
            raise ProposalAlreadyResolvedError(proposal.id, proposal.status)

        if self._relinquish.relinquished:
            self._fail(proposal, now, FAILURE_RELINQUISHED)
            raise CutControlRelinquishedError()

        if proposal.is_expired(now):
            self._fail(proposal, now, FAILURE_EXPIRED)
            raise ProposalExpiredError(proposal.id, proposal.expires_at)

        voter = self._signers.canonical(signer)
        if proposal.has_voted(voter):
            raise AlreadyVotedError(voter, proposal.id)

        with self._events.batch(), self._store.atomic():
            self._register_vote(proposal, voter, now)
        return proposal.status

    # ── Internal transitions ──────────────────────────────────────────

    def _register_vote(self, proposal: Proposal, voter: str, now: float) -> None:
        self._store.record_vote(proposal.id, voter)
        self._events.emit(
            VoteRegistered(proposal_id=proposal.id, signer=voter, timestamp=now)
        )
        logger.info(
            f"Vote: {voter} → proposal #{proposal.id} "
            f"({proposal.vote_count}/{self._signers.threshold})"
        )

        if proposal.vote_count >= self._signers.threshold:
            self._execute(proposal, now)

    def _execute(self, proposal: Proposal, now: float) -> None:
        # Status flips before the executor runs so a re-entrant vote sees EXECUTED
        self._store.set_status(proposal.id, ProposalStatus.EXECUTED, now)
        try:
            result = self._apply(proposal.change_set)
        except Exception as exc:
            logger.error(f"Proposal #{proposal.id}: cut executor raised: {exc}")
            raise ExecutionFailedError(proposal.id, str(exc)) from exc
        if result is False:
            logger.error(f"Proposal #{proposal.id}: cut executor reported failure")
            raise ExecutionFailedError(proposal.id, "executor reported failure")

        self._events.emit(ProposalExecuted(proposal_id=proposal.id, timestamp=now))
        logger.info(f"Proposal #{proposal.id} EXECUTED")

    def _fail(self, proposal: Proposal, now: float, reason: str) -> None:
        self._store.set_status(proposal.id, ProposalStatus.FAILED, now, reason)
        self._events.emit(
            ProposalFailed(proposal_id=proposal.id, reason=reason, timestamp=now)
        )
        logger.warning(f"Proposal #{proposal.id} FAILED ({reason})")

    # ── Queries ───────────────────────────────────────────────────────

    def get_proposal(self, proposal_id: Any) -> Proposal:
        return self._store.get(proposal_id).copy()

    def get_vote_status(self, proposal_id: Any, signer: Any) -> bool:
        """Whether *signer* voted on the proposal; False for unknown ids or non-signers."""
        proposal = self._store.find(proposal_id)
        if proposal is None or not self._signers.is_signer(signer):
            return False
        return proposal.has_voted(self._signers.canonical(signer))

    def effective_status(self, proposal_id: Any, now: float) -> ProposalStatus:
        """Read-side view that reports untouched expired proposals as FAILED."""
        return self._store.get(proposal_id).effective_status(now)

    def proposals(self) -> List[Proposal]:
        return [p.copy() for p in self._store.all()]

    def pending_proposals(self) -> List[Proposal]:
        return [p.copy() for p in self._store.pending()]

    @property
    def threshold(self) -> int:
        return self._signers.threshold

    @property
    def store(self) -> ProposalStore:
        return self._store

    def __repr__(self) -> str:
        return (
            f"<VotingEngine proposals={len(self._store)} "
            f"threshold={self._signers.threshold}>"
        )
