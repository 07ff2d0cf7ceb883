"""
Diamond DAO Facade Test Suite

Coverage:
  - deployment through the facade
  - clock-driven expiry with ManualClock
  - default in-memory FacetRegistry executor
  - subscriptions, queries and serialization round-trip
"""

import os
import sys
import threading
from unittest.mock import MagicMock

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from diamond_dao.clock import ManualClock
from diamond_dao.constants import DEFAULT_PROPOSAL_EXPIRATION_SECONDS, NULL_ADDRESS
from diamond_dao.crypto.address import normalize_address
from diamond_dao.governance import (
    AlreadyVotedError,
    ChangeSet,
    CutControlRelinquishedError,
    DiamondDAO,
    DuplicateSignerError,
    EmptySignerListError,
    ExecutionFailedError,
    FacetCut,
    FacetCutAction,
    InvalidExpirationWindowError,
    InvalidVoteThresholdError,
    NotASignerError,
    NullAddressError,
    ProposalAlreadyResolvedError,
    ProposalExpiredError,
    ProposalStatus,
)


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
DAVE = "0x" + "d4" * 20

FACET_A = normalize_address("0x" + "fa" * 20)
FACET_B = normalize_address("0x" + "fb" * 20)
SEL_A = "0x12345678"
SEL_B = "0x9abcdef0"

T0 = 1_700_000_000.0
WINDOW = 86400


def add_cut(facet=FACET_A, *selectors) -> ChangeSet:
    return ChangeSet(cuts=(FacetCut(facet, FacetCutAction.ADD, selectors or (SEL_A,)),))


def make_dao(threshold=2, executor=None, window=WINDOW, start=T0):
    """Helper deploying a DAO over ALICE/BOB/CAROL with a manual clock."""
    clock = ManualClock(start)
    dao = DiamondDAO(
        [ALICE, BOB, CAROL],
        threshold,
        ALICE,
        executor=executor,
        clock=clock,
        proposal_expiration=window,
    )
    return dao, clock


# ══════════════════════════════════════════════════════════════════════
#  DEPLOYMENT
# ══════════════════════════════════════════════════════════════════════


class TestDiamondDAODeploy:

    def test_deploy(self):
        dao, _ = make_dao()
        assert dao.vote_threshold() == 2
        assert dao.proposal_expiration() == WINDOW
        assert dao.signers == tuple(normalize_address(a) for a in (ALICE, BOB, CAROL))
        assert dao.admin == normalize_address(ALICE)
        assert not dao.relinquished
        assert dao.facet_registry is not None
        assert dao.proposals() == []

    def test_default_expiration_is_seven_days(self):
        dao = DiamondDAO([ALICE], 1, ALICE)
        assert dao.proposal_expiration() == DEFAULT_PROPOSAL_EXPIRATION_SECONDS == 7 * 24 * 3600

    def test_empty_signers_raises(self):
        with pytest.raises(EmptySignerListError):
            DiamondDAO([], 1, ALICE)

    def test_zero_threshold_raises(self):
        with pytest.raises(InvalidVoteThresholdError):
            DiamondDAO([ALICE, BOB], 0, ALICE)

    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_null_signer_at_any_position_raises(self, position):
        signers = [ALICE, BOB, CAROL]
        signers[position] = NULL_ADDRESS
        with pytest.raises(NullAddressError):
            DiamondDAO(signers, 2, ALICE)

    @pytest.mark.parametrize("signers", [
        [ALICE, ALICE],
        [ALICE, BOB, ALICE],
        [BOB, CAROL, DAVE, CAROL],
    ])
    def test_duplicate_signer_at_any_position_raises(self, signers):
        with pytest.raises(DuplicateSignerError):
            DiamondDAO(signers, 1, ALICE)

    def test_invalid_expiration_raises(self):
        with pytest.raises(InvalidExpirationWindowError):
            DiamondDAO([ALICE], 1, ALICE, proposal_expiration=0)

    def test_external_executor_has_no_registry(self):
        dao, _ = make_dao(executor=MagicMock())
        assert dao.facet_registry is None


# ══════════════════════════════════════════════════════════════════════
#  LIFECYCLE THROUGH THE FACADE
# ══════════════════════════════════════════════════════════════════════


class TestDiamondDAOLifecycle:

    def test_execute_applies_cut_to_registry(self):
        dao, clock = make_dao()
        pid = dao.propose_cut(ALICE, add_cut(FACET_A, SEL_A, SEL_B))
        clock.advance(60)
        assert dao.vote_on_cut(BOB, pid) == ProposalStatus.EXECUTED
        assert dao.facet_registry.facet_address(SEL_A) == FACET_A
        assert dao.facet_registry.cut_count == 1
        p = dao.get_proposal(pid)
        assert p.created_at == T0
        assert p.resolved_at == T0 + 60

    def test_rejected_cut_rolls_back(self):
        dao, _ = make_dao()
        first = dao.propose_cut(ALICE, add_cut(FACET_A, SEL_A))
        dao.vote_on_cut(BOB, first)

        second = dao.propose_cut(ALICE, add_cut(FACET_B, SEL_A))
        with pytest.raises(ExecutionFailedError, match="already exists"):
            dao.vote_on_cut(BOB, second)

        assert dao.get_proposal(second).status == ProposalStatus.PENDING
        assert not dao.get_vote_status(second, BOB)
        assert dao.facet_registry.facet_address(SEL_A) == FACET_A

    def test_expiry_with_manual_clock(self):
        dao, clock = make_dao()
        pid = dao.propose_cut(ALICE, add_cut())
        clock.advance(WINDOW)
        assert dao.effective_status(pid) == ProposalStatus.FAILED
        assert dao.get_proposal(pid).status == ProposalStatus.PENDING

        with pytest.raises(ProposalExpiredError):
            dao.vote_on_cut(BOB, pid)
        assert dao.get_proposal(pid).status == ProposalStatus.FAILED
        assert dao.get_proposal(pid).resolved_at == T0 + WINDOW

    def test_three_signer_scenarios(self):
        dao, clock = make_dao()
        p1 = dao.propose_cut(ALICE, add_cut(FACET_A, SEL_A))
        dao.vote_on_cut(BOB, p1)
        with pytest.raises(ProposalAlreadyResolvedError):
            dao.vote_on_cut(CAROL, p1)

        p2 = dao.propose_cut(ALICE, add_cut(FACET_B, SEL_B))
        clock.advance(WINDOW + 1)
        with pytest.raises(ProposalExpiredError):
            dao.vote_on_cut(BOB, p2)
        assert dao.get_proposal(p2).status == ProposalStatus.FAILED

        assert dao.vote_to_relinquish_cut_control(ALICE) is False
        assert dao.vote_to_relinquish_cut_control(BOB) is True
        assert dao.relinquished
        with pytest.raises(CutControlRelinquishedError):
            dao.propose_cut(CAROL, add_cut(FACET_B, SEL_B))

        assert [e.name for e in dao.events] == [
            "NewProposal", "VoteRegistered", "VoteRegistered", "ProposalExecuted",
            "NewProposal", "VoteRegistered", "ProposalFailed",
            "RelinquishVoteRegistered", "RelinquishVoteRegistered", "ControlRelinquished",
        ]

    def test_queries(self):
        dao, _ = make_dao(threshold=3)
        pid = dao.propose_cut(ALICE, add_cut())
        assert dao.get_vote_status(pid, ALICE)
        assert not dao.get_vote_status(pid, BOB)
        assert dao.is_signer(BOB)
        assert not dao.is_signer(DAVE)
        assert [p.id for p in dao.proposals(ProposalStatus.PENDING)] == [pid]
        assert dao.proposals(ProposalStatus.EXECUTED) == []

    def test_relinquish_status_queries(self):
        dao, _ = make_dao(threshold=3)
        dao.vote_to_relinquish_cut_control(CAROL)
        assert dao.get_relinquish_vote_status(CAROL)
        assert not dao.get_relinquish_vote_status(ALICE)
        assert dao.relinquish_vote_count == 1

    def test_non_signer_via_facade(self):
        dao, _ = make_dao()
        with pytest.raises(NotASignerError):
            dao.propose_cut(DAVE, add_cut())
        with pytest.raises(NotASignerError):
            dao.vote_to_relinquish_cut_control(DAVE)

    def test_subscribe(self):
        dao, _ = make_dao()
        received = []
        unsubscribe = dao.subscribe(received.append)
        dao.propose_cut(ALICE, add_cut())
        unsubscribe()
        dao.propose_cut(BOB, add_cut(FACET_B, SEL_B))
        assert [e.name for e in received] == ["NewProposal", "VoteRegistered"]

    def test_events_carry_clock_time(self):
        dao, clock = make_dao()
        clock.advance(5)
        dao.propose_cut(ALICE, add_cut())
        assert {e.timestamp for e in dao.events} == {T0 + 5}

    def test_engines_share_the_dao_event_log(self):
        dao, _ = make_dao()
        assert dao._voting._events is dao._events
        assert dao._relinquish._events is dao._events

        pid = dao.propose_cut(ALICE, add_cut())
        dao.vote_on_cut(BOB, pid)
        dao.vote_to_relinquish_cut_control(ALICE)
        dao.vote_to_relinquish_cut_control(BOB)
        assert [e.name for e in dao.events] == [
            "NewProposal", "VoteRegistered", "VoteRegistered", "ProposalExecuted",
            "RelinquishVoteRegistered", "RelinquishVoteRegistered", "ControlRelinquished",
        ]

    def test_failing_subscriber_does_not_fail_committed_vote(self):
        executor = MagicMock()
        executor.apply_registry_change.return_value = True
        dao, _ = make_dao(executor=executor)

        def explode(event):
            if event.name == "VoteRegistered":
                raise RuntimeError("subscriber failure")

        dao.subscribe(explode)
        pid = dao.propose_cut(ALICE, add_cut())
        assert dao.vote_on_cut(BOB, pid) == ProposalStatus.EXECUTED
        assert executor.apply_registry_change.call_count == 1
        assert [e.name for e in dao.events][-1] == "ProposalExecuted"

    def test_cut_log_uses_dao_clock(self):
        dao, clock = make_dao()
        clock.advance(42)
        pid = dao.propose_cut(ALICE, add_cut())
        dao.vote_on_cut(BOB, pid)
        assert dao.facet_registry.cut_log[0]["appliedAt"] == T0 + 42


class TestDiamondDAOConcurrency:

    def test_concurrent_votes_count_once(self):
        dao, _ = make_dao(threshold=3)
        pid = dao.propose_cut(ALICE, add_cut())
        errors = []

        def vote():
            try:
                dao.vote_on_cut(BOB, pid)
            except AlreadyVotedError as e:
                errors.append(e)

        threads = [threading.Thread(target=vote) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert dao.get_proposal(pid).vote_count == 2
        assert len(errors) == 7


# ══════════════════════════════════════════════════════════════════════
#  SERIALIZATION
# ══════════════════════════════════════════════════════════════════════


class TestDiamondDAOSerialization:

    def build(self):
        dao, clock = make_dao()
        p1 = dao.propose_cut(ALICE, add_cut(FACET_A, SEL_A))
        dao.vote_on_cut(BOB, p1)
        dao.propose_cut(CAROL, add_cut(FACET_B, SEL_B))
        dao.vote_to_relinquish_cut_control(ALICE)
        return dao, clock

    def test_round_trip(self):
        dao, clock = self.build()
        restored = DiamondDAO.from_dict(dao.to_dict(), clock=clock)

        assert restored.signers == dao.signers
        assert restored.vote_threshold() == 2
        assert restored.proposal_expiration() == WINDOW
        assert [p.to_dict() for p in restored.proposals()] == [p.to_dict() for p in dao.proposals()]
        assert restored.facet_registry.facet_address(SEL_A) == FACET_A
        assert restored.get_relinquish_vote_status(ALICE)
        assert not restored.relinquished
        assert [e.to_dict() for e in restored.events] == [e.to_dict() for e in dao.events]

    def test_restore_does_not_rerun_cuts(self):
        dao, clock = self.build()
        restored = DiamondDAO.from_dict(dao.to_dict(), clock=clock)
        assert restored.facet_registry.cut_count == 1

    def test_restored_dao_keeps_voting(self):
        dao, clock = self.build()
        restored = DiamondDAO.from_dict(dao.to_dict(), clock=clock)
        assert restored.vote_on_cut(ALICE, 2) == ProposalStatus.EXECUTED
        assert restored.facet_registry.facet_address(SEL_B) == FACET_B
        assert restored.propose_cut(BOB, add_cut(FACET_B, "0xdeadbeef")) == 3

    def test_restored_dao_publishes_to_its_event_log(self):
        dao, clock = self.build()
        restored = DiamondDAO.from_dict(dao.to_dict(), clock=clock)
        assert restored._voting._events is restored._events
        clock.advance(10)
        restored.vote_on_cut(ALICE, 2)
        assert restored.events[-1].name == "ProposalExecuted"
        assert restored.facet_registry.cut_log[-1]["appliedAt"] == T0 + 10

    def test_restored_relinquish_completes(self):
        dao, clock = self.build()
        restored = DiamondDAO.from_dict(dao.to_dict(), clock=clock)
        assert restored.vote_to_relinquish_cut_control(BOB) is True

    def test_repr(self):
        dao, _ = make_dao()
        assert "threshold=2" in repr(dao)
