"""
Governance error taxonomy.

    GovernanceError
      ├── ConstructionError      fatal, no instance is created
      ├── AuthorizationError     caller-local, no state change
      ├── ProposalNotFoundError  caller-local
      ├── StateConflictError     caller-local, invariants untouched
      ├── TemporalError          commits a FAILED transition before raising
      ├── CollaboratorError      the whole call is rolled back
      └── InvalidChangeSetError  malformed cut payload

Messages keep the wording of the deployed contract's revert strings where
one exists, so callers matching on text keep working.
"""

from typing import Optional

from ..exceptions import DiamondDAOException


class GovernanceError(DiamondDAOException):
    """Base governance exception."""


# ══════════════════════════════════════════════════════════════════════
#  CONSTRUCTION
# ══════════════════════════════════════════════════════════════════════

class ConstructionError(GovernanceError):
    """Raised when a governance instance cannot be deployed."""


class EmptySignerListError(ConstructionError):
    """Signer list is empty."""

    def __init__(self, message: str = "ERR:NL"):
        super().__init__(message)


class InvalidVoteThresholdError(ConstructionError):
    """Threshold is < 1 or exceeds the number of signers."""


class DuplicateSignerError(ConstructionError):
    """The same identity appears twice in the signer list."""


class NullAddressError(ConstructionError):
    """A signer (or the admin) is the zero address."""


class InvalidSignerAddressError(ConstructionError):
    """A signer identity is not a well-formed address."""


class InvalidExpirationWindowError(ConstructionError):
    """Proposal expiration window is not a positive number of seconds."""


# ══════════════════════════════════════════════════════════════════════
#  AUTHORIZATION
# ══════════════════════════════════════════════════════════════════════

class AuthorizationError(GovernanceError):
    """Caller is not allowed to perform the operation."""


class NotASignerError(AuthorizationError):
    """Caller is not in the signer set."""

    def __init__(self, identity: object = None):
        self.identity = identity
        super().__init__("Not a signer" if identity is None else f"Not a signer: {identity}")


class CutControlRelinquishedError(AuthorizationError):
    """Signers have permanently given up control over diamond cuts."""

    def __init__(self, message: str = "Cut control relinquished"):
        super().__init__(message)


class AlreadyRelinquishedError(AuthorizationError):
    """Relinquish vote already concluded; no further votes are accepted."""

    def __init__(self, message: str = "Cut control already relinquished"):
        super().__init__(message)


# ══════════════════════════════════════════════════════════════════════
#  LOOKUP
# ══════════════════════════════════════════════════════════════════════

class ProposalNotFoundError(GovernanceError):
    """Unknown or malformed proposal id."""

    def __init__(self, proposal_id: object = None):
        self.proposal_id = proposal_id
        super().__init__(f"Invalid proposal ID: {proposal_id!r}")


# ══════════════════════════════════════════════════════════════════════
#  STATE CONFLICTS
# ══════════════════════════════════════════════════════════════════════

class StateConflictError(GovernanceError):
    """Operation conflicts with the current state."""


class AlreadyVotedError(StateConflictError):
    """Signer already voted."""

    def __init__(self, signer: object = None, proposal_id: Optional[int] = None):
        self.signer = signer
        self.proposal_id = proposal_id
        if proposal_id is None:
            super().__init__(f"Already voted: {signer}")
        else:
            super().__init__(f"Already voted: {signer} on proposal #{proposal_id}")


class ProposalAlreadyResolvedError(StateConflictError):
    """Proposal reached a terminal status; the status is attached."""

    def __init__(self, proposal_id: int, status):
        self.proposal_id = proposal_id
        self.status = status
        super().__init__(
            f"Proposal #{proposal_id} already resolved (status={status.name})"
        )


class InvalidStateTransitionError(StateConflictError):
    """Attempted a status change out of a terminal state."""


# ══════════════════════════════════════════════════════════════════════
#  TEMPORAL
# ══════════════════════════════════════════════════════════════════════

class TemporalError(GovernanceError):
    """Time-dependent failure."""


class ProposalExpiredError(TemporalError):
    """
    Vote arrived at or after the proposal deadline.

    Unlike every other governance error this one is side-effecting: by the
    time it is raised the proposal has been marked FAILED and a
    ProposalFailed notification has been published.
    """

    def __init__(self, proposal_id: int, expires_at: float):
        self.proposal_id = proposal_id
        self.expires_at = expires_at
        super().__init__(f"Proposal expired: #{proposal_id} (deadline {expires_at})")


# ══════════════════════════════════════════════════════════════════════
#  COLLABORATORS
# ══════════════════════════════════════════════════════════════════════

class CollaboratorError(GovernanceError):
    """External collaborator failed."""


class ExecutionFailedError(CollaboratorError):
    """Cut executor rejected the change set; the triggering call was rolled back."""

    def __init__(self, proposal_id: int, reason: str = ""):
        self.proposal_id = proposal_id
        self.reason = reason
        message = f"Execution failed for proposal #{proposal_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# ══════════════════════════════════════════════════════════════════════
#  PAYLOAD
# ══════════════════════════════════════════════════════════════════════

class InvalidChangeSetError(GovernanceError):
    """Cut payload is malformed."""


class FacetCutError(GovernanceError):
    """The in-memory facet registry refused a cut."""
