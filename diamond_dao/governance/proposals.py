"""
Cut Proposals

Defines the diamond-cut payload (FacetCut / InitCall / ChangeSet), the
proposal lifecycle (PENDING → EXECUTED | FAILED) and the ProposalStore
that owns every proposal ever created.
"""

import contextlib
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple, Union

from eth_utils import decode_hex, encode_hex, keccak, to_canonical_address

from ..constants import (
    DEFAULT_PROPOSAL_EXPIRATION_SECONDS,
    FACET_CUT_ADD,
    FACET_CUT_REMOVE,
    FACET_CUT_REPLACE,
    FIRST_PROPOSAL_ID,
    SELECTOR_BYTES,
    VALID_HEX_PATTERN,
    VALID_SELECTOR_PATTERN,
)
from ..crypto.address import is_null_address, is_valid_address, normalize_address
from ..logger import get_logger
from .errors import (
    AlreadyVotedError,
    InvalidChangeSetError,
    InvalidExpirationWindowError,
    InvalidStateTransitionError,
    ProposalNotFoundError,
)

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class FacetCutAction(IntEnum):
    """What a cut does to its selectors."""
    ADD = FACET_CUT_ADD
    REPLACE = FACET_CUT_REPLACE
    REMOVE = FACET_CUT_REMOVE


class ProposalStatus(IntEnum):
    """Lifecycle stage of a cut proposal."""
    PENDING = 0     # Accepting votes
    EXECUTED = 1    # Threshold reached, cut applied
    FAILED = 2      # Expired (or control relinquished) before threshold


# Valid forward transitions
_VALID_TRANSITIONS: Dict[ProposalStatus, set] = {
    ProposalStatus.PENDING:  {ProposalStatus.EXECUTED, ProposalStatus.FAILED},
    # Terminal states, no further transitions
    ProposalStatus.EXECUTED: set(),
    ProposalStatus.FAILED:   set(),
}


# ══════════════════════════════════════════════════════════════════════
#  CHANGE SET
# ══════════════════════════════════════════════════════════════════════

def _normalize_selector(selector: Any) -> str:
    if isinstance(selector, (bytes, bytearray)):
        if len(selector) != SELECTOR_BYTES:
            raise InvalidChangeSetError(f"Selector must be {SELECTOR_BYTES} bytes: {selector!r}")
        selector = encode_hex(bytes(selector))
    if not isinstance(selector, str) or not VALID_SELECTOR_PATTERN.match(selector):
        raise InvalidChangeSetError(f"Invalid function selector: {selector!r}")
    return selector.lower()


def _normalize_calldata(calldata: Union[bytes, str, None]) -> bytes:
    if calldata is None:
        return b""
    if isinstance(calldata, (bytes, bytearray)):
        return bytes(calldata)
    if isinstance(calldata, str):
        body = calldata[2:] if calldata.startswith(("0x", "0X")) else calldata
        if len(body) % 2 or not VALID_HEX_PATTERN.match(body):
            raise InvalidChangeSetError(f"Calldata is not valid hex: {calldata!r}")
        return bytes.fromhex(body)
    raise InvalidChangeSetError(f"Unsupported calldata type: {type(calldata).__name__}")


@dataclass(frozen=True)
class FacetCut:
    """
    One facet modification.

    Fields:
        facet_address:       Facet implementing the selectors (zero address for REMOVE)
        action:              ADD / REPLACE / REMOVE
        function_selectors:  0x-prefixed 4-byte selectors, lowercase
    """
    facet_address: str
    action: FacetCutAction
    function_selectors: Tuple[str, ...]

    def __post_init__(self):
        if not is_valid_address(self.facet_address):
            raise InvalidChangeSetError(f"Invalid facet address: {self.facet_address!r}")
        try:
            action = FacetCutAction(self.action)
        except ValueError:
            raise InvalidChangeSetError(f"Invalid facet cut action: {self.action!r}") from None

        selectors = tuple(_normalize_selector(s) for s in self.function_selectors)
        if not selectors:
            raise InvalidChangeSetError(
                f"No selectors in {action.name} cut for {self.facet_address}"
            )
        if len(set(selectors)) != len(selectors):
            raise InvalidChangeSetError(
                f"Duplicate selectors in {action.name} cut for {self.facet_address}"
            )

        object.__setattr__(self, "facet_address", normalize_address(self.facet_address))
        object.__setattr__(self, "action", action)
        object.__setattr__(self, "function_selectors", selectors)

    def encode(self) -> bytes:
        return (
            to_canonical_address(self.facet_address)
            + bytes([int(self.action)])
            + len(self.function_selectors).to_bytes(2, "big")
            + b"".join(decode_hex(s) for s in self.function_selectors)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "facetAddress": self.facet_address,
            "action": self.action.name,
            "functionSelectors": list(self.function_selectors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FacetCut":
        action = data["action"]
        if isinstance(action, str):
            try:
                action = FacetCutAction[action.upper()]
            except KeyError:
                raise InvalidChangeSetError(f"Invalid facet cut action: {action!r}") from None
        return cls(
            facet_address=data["facetAddress"],
            action=action,
            function_selectors=tuple(data.get("functionSelectors", ())),
        )


@dataclass(frozen=True)
class InitCall:
    """Initialization call run after the cuts are applied."""
    target: str
    calldata: bytes = b""

    def __post_init__(self):
        if not is_valid_address(self.target) or is_null_address(self.target):
            raise InvalidChangeSetError(f"Invalid init target: {self.target!r}")
        object.__setattr__(self, "target", normalize_address(self.target))
        object.__setattr__(self, "calldata", _normalize_calldata(self.calldata))

    def encode(self) -> bytes:
        return (
            to_canonical_address(self.target)
            + len(self.calldata).to_bytes(4, "big")
            + self.calldata
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"target": self.target, "calldata": encode_hex(self.calldata)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InitCall":
        return cls(target=data["target"], calldata=_normalize_calldata(data.get("calldata")))


@dataclass(frozen=True)
class ChangeSet:
    """
    Registry modification proposed for a vote.

    Inert for the governance core: only the cut executor interprets it.
    """
    cuts: Tuple[FacetCut, ...] = ()
    init: Optional[InitCall] = None

    def __post_init__(self):
        cuts = tuple(self.cuts)
        for cut in cuts:
            if not isinstance(cut, FacetCut):
                raise InvalidChangeSetError(f"Expected FacetCut, got {type(cut).__name__}")
        if not cuts and self.init is None:
            raise InvalidChangeSetError("Change set has no cuts and no init call")
        object.__setattr__(self, "cuts", cuts)

    @property
    def digest(self) -> str:
        """Keccak-256 over a canonical encoding, for off-line recomputation."""
        payload = len(self.cuts).to_bytes(2, "big") + b"".join(c.encode() for c in self.cuts)
        payload += self.init.encode() if self.init else b"\x00"
        return encode_hex(keccak(payload))

    @property
    def selector_count(self) -> int:
        return sum(len(c.function_selectors) for c in self.cuts)

    def summary(self) -> Dict[str, Any]:
        """Compact description carried by the NewProposal notification."""
        return {
            "digest": self.digest,
            "cuts": [
                {
                    "facetAddress": c.facet_address,
                    "action": c.action.name,
                    "selectorCount": len(c.function_selectors),
                }
                for c in self.cuts
            ],
            "initTarget": self.init.target if self.init else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cuts": [c.to_dict() for c in self.cuts],
            "init": self.init.to_dict() if self.init else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeSet":
        init = data.get("init")
        return cls(
            cuts=tuple(FacetCut.from_dict(c) for c in data.get("cuts", [])),
            init=InitCall.from_dict(init) if init else None,
        )


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Cut proposal.

    Fields:
        id:              Unique monotonic identifier
        proposer:        Signer who created it (implicitly its first voter)
        change_set:      Payload handed to the cut executor
        created_at:      Timestamp of creation
        expires_at:      created_at + expiration window
        status:          PENDING / EXECUTED / FAILED
        voters:          Signers who voted for it
        resolved_at:     Timestamp of the terminal transition
        failure_reason:  "expired" or "relinquished" for FAILED proposals
    """
    id: int
    proposer: str
    change_set: ChangeSet
    created_at: float
    expires_at: float
    status: ProposalStatus = ProposalStatus.PENDING
    voters: Set[str] = field(default_factory=set)
    resolved_at: Optional[float] = None
    failure_reason: Optional[str] = None

    @property
    def vote_count(self) -> int:
        return len(self.voters)

    @property
    def is_pending(self) -> bool:
        return self.status == ProposalStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return not self.is_pending

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def effective_status(self, now: float) -> ProposalStatus:
        """Status as it would read after a touch at *now*; never mutates."""
        if self.is_pending and self.is_expired(now):
            return ProposalStatus.FAILED
        return self.status

    def has_voted(self, signer: str) -> bool:
        return signer in self.voters

    def copy(self) -> "Proposal":
        """Detached copy safe to hand to callers."""
        return replace(self, voters=set(self.voters))

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": self.proposer,
            "changeSet": self.change_set.to_dict(),
            "changeSetDigest": self.change_set.digest,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "status": self.status.name,
            "voters": sorted(self.voters),
            "voteCount": self.vote_count,
            "resolvedAt": self.resolved_at,
            "failureReason": self.failure_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        return cls(
            id=int(data["id"]),
            proposer=normalize_address(data["proposer"]),
            change_set=ChangeSet.from_dict(data["changeSet"]),
            created_at=float(data["createdAt"]),
            expires_at=float(data["expiresAt"]),
            status=ProposalStatus[data["status"]],
            voters={normalize_address(v) for v in data.get("voters", [])},
            resolved_at=data.get("resolvedAt"),
            failure_reason=data.get("failureReason"),
        )

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} status={self.status.name} "
            f"votes={self.vote_count}>"
        )


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL STORE
# ══════════════════════════════════════════════════════════════════════

class ProposalStore:
    """
    Keyed collection of every proposal, never pruned.

    Mutations made inside an ``atomic()`` block are journaled and undone if
    the block raises, which is how a failed cut execution discards the vote
    and status transition that triggered it.
    """

    def __init__(
        self,
        expiration_window: float = DEFAULT_PROPOSAL_EXPIRATION_SECONDS,
        first_id: int = FIRST_PROPOSAL_ID,
    ):
        if (
            not isinstance(expiration_window, (int, float))
            or isinstance(expiration_window, bool)
            or expiration_window <= 0
        ):
            raise InvalidExpirationWindowError(
                f"Proposal expiration must be a positive number of seconds, "
                f"got {expiration_window!r}"
            )
        self.expiration_window = expiration_window
        self._proposals: Dict[int, Proposal] = {}
        self._next_id = first_id
        self._journal: Optional[List[Callable[[], None]]] = None

    # ── Transactions ──────────────────────────────────────────────────

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """Undo every mutation made in the block if it raises."""
        if self._journal is not None:
            # Nested block joins the outer transaction
            yield
            return

        self._journal = []
        try:
            yield
        except BaseException:
            for undo in reversed(self._journal):
                undo()
            logger.debug(f"Rolled back {len(self._journal)} proposal store change(s)")
            raise
        finally:
            self._journal = None

    def _log_undo(self, undo: Callable[[], None]) -> None:
        if self._journal is not None:
            self._journal.append(undo)

    # ── Mutations ─────────────────────────────────────────────────────

    def create(self, proposer: str, change_set: ChangeSet, now: float) -> int:
        """Insert a fresh PENDING proposal and return its id."""
        pid = self._next_id
        self._proposals[pid] = Proposal(
            id=pid,
            proposer=proposer,
            change_set=change_set,
            created_at=now,
            expires_at=now + self.expiration_window,
        )
        self._next_id = pid + 1

        def undo():
            del self._proposals[pid]
            self._next_id = pid

        self._log_undo(undo)
        return pid

    def record_vote(self, proposal_id: int, signer: str) -> None:
        proposal = self.get(proposal_id)
        if not proposal.is_pending:
            raise InvalidStateTransitionError(
                f"Cannot vote on proposal #{proposal_id} in {proposal.status.name}"
            )
        if signer in proposal.voters:
            raise AlreadyVotedError(signer, proposal_id)
        proposal.voters.add(signer)
        self._log_undo(lambda: proposal.voters.discard(signer))

    def set_status(
        self,
        proposal_id: int,
        status: ProposalStatus,
        now: float,
        reason: Optional[str] = None,
    ) -> None:
        """One-way transition out of PENDING."""
        proposal = self.get(proposal_id)
        allowed = _VALID_TRANSITIONS.get(proposal.status, set())
        if status not in allowed:
            raise InvalidStateTransitionError(
                f"Cannot transition proposal #{proposal_id} from "
                f"{proposal.status.name} → {status.name}"
            )

        previous = (proposal.status, proposal.resolved_at, proposal.failure_reason)
        proposal.status = status
        proposal.resolved_at = now
        proposal.failure_reason = reason

        def undo():
            proposal.status, proposal.resolved_at, proposal.failure_reason = previous

        self._log_undo(undo)

    # ── Queries ───────────────────────────────────────────────────────

    def get(self, proposal_id: Any) -> Proposal:
        proposal = None
        if isinstance(proposal_id, int) and not isinstance(proposal_id, bool):
            proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    def find(self, proposal_id: Any) -> Optional[Proposal]:
        try:
            return self.get(proposal_id)
        except ProposalNotFoundError:
            return None

    def all(self) -> List[Proposal]:
        return [self._proposals[pid] for pid in sorted(self._proposals)]

    def pending(self) -> List[Proposal]:
        return [p for p in self.all() if p.is_pending]

    @property
    def next_id(self) -> int:
        return self._next_id

    def __contains__(self, proposal_id: Any) -> bool:
        return self.find(proposal_id) is not None

    def __len__(self) -> int:
        return len(self._proposals)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expirationWindow": self.expiration_window,
            "nextId": self._next_id,
            "proposals": [p.to_dict() for p in self.all()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalStore":
        store = cls(expiration_window=data["expirationWindow"])
        for item in data.get("proposals", []):
            proposal = Proposal.from_dict(item)
            store._proposals[proposal.id] = proposal
        store._next_id = max(
            int(data.get("nextId", FIRST_PROPOSAL_ID)),
            max(store._proposals, default=FIRST_PROPOSAL_ID - 1) + 1,
        )
        return store

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={len(self._proposals)} next_id={self._next_id}>"
