"""
Diamond DAO Cut Governance

Provides:
  - SignerRegistry                                  (signers.py)
  - FacetCut / InitCall / ChangeSet / Proposal / ProposalStore (proposals.py)
  - VotingEngine                                    (voting.py)
  - RelinquishVotingEngine                          (relinquish.py)
  - CutExecutor / FacetRegistry                     (execution.py)
  - Governance notifications / EventLog             (events.py)
  - DiamondDAO facade                               (dao.py)
"""

from .errors import (
    AlreadyRelinquishedError,
    AlreadyVotedError,
    AuthorizationError,
    CollaboratorError,
    ConstructionError,
    CutControlRelinquishedError,
    DuplicateSignerError,
    EmptySignerListError,
    ExecutionFailedError,
    FacetCutError,
    GovernanceError,
    InvalidChangeSetError,
    InvalidExpirationWindowError,
    InvalidSignerAddressError,
    InvalidStateTransitionError,
    InvalidVoteThresholdError,
    NotASignerError,
    NullAddressError,
    ProposalAlreadyResolvedError,
    ProposalExpiredError,
    ProposalNotFoundError,
    StateConflictError,
    TemporalError,
)
from .signers import SignerRegistry
from .proposals import (
    ChangeSet,
    FacetCut,
    FacetCutAction,
    InitCall,
    Proposal,
    ProposalStatus,
    ProposalStore,
)
from .events import (
    ControlRelinquished,
    EventLog,
    GovernanceEvent,
    NewProposal,
    ProposalExecuted,
    ProposalFailed,
    RelinquishVoteRegistered,
    VoteRegistered,
)
from .execution import CutExecutor, FacetRegistry
from .relinquish import RelinquishVotingEngine
from .voting import VotingEngine
from .dao import DiamondDAO

__all__ = [
    # Errors
    "AlreadyRelinquishedError",
    "AlreadyVotedError",
    "AuthorizationError",
    "CollaboratorError",
    "ConstructionError",
    "CutControlRelinquishedError",
    "DuplicateSignerError",
    "EmptySignerListError",
    "ExecutionFailedError",
    "FacetCutError",
    "GovernanceError",
    "InvalidChangeSetError",
    "InvalidExpirationWindowError",
    "InvalidSignerAddressError",
    "InvalidStateTransitionError",
    "InvalidVoteThresholdError",
    "NotASignerError",
    "NullAddressError",
    "ProposalAlreadyResolvedError",
    "ProposalExpiredError",
    "ProposalNotFoundError",
    "StateConflictError",
    "TemporalError",
    # Signers
    "SignerRegistry",
    # Proposals
    "ChangeSet",
    "FacetCut",
    "FacetCutAction",
    "InitCall",
    "Proposal",
    "ProposalStatus",
    "ProposalStore",
    # Events
    "ControlRelinquished",
    "EventLog",
    "GovernanceEvent",
    "NewProposal",
    "ProposalExecuted",
    "ProposalFailed",
    "RelinquishVoteRegistered",
    "VoteRegistered",
    # Execution
    "CutExecutor",
    "FacetRegistry",
    # Engines
    "RelinquishVotingEngine",
    "VotingEngine",
    "DiamondDAO",
]
