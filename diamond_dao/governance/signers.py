"""
Signer Registry

Immutable set of authorized signer identities plus the vote threshold
shared by cut proposals and the relinquish vote.
"""

from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from ..crypto.address import is_null_address, is_valid_address, normalize_address
from ..logger import get_logger
from .errors import (
    DuplicateSignerError,
    EmptySignerListError,
    InvalidSignerAddressError,
    InvalidVoteThresholdError,
    NullAddressError,
)

logger = get_logger(__name__)


class SignerRegistry:
    """
    Authorized signers and vote threshold, fixed at construction.

    Validation order mirrors the deployment checks:
        1. empty signer list        → EmptySignerListError
        2. threshold out of range   → InvalidVoteThresholdError
        3. null signer or admin     → NullAddressError
        4. malformed identity       → InvalidSignerAddressError
        5. repeated identity        → DuplicateSignerError
    """

    __slots__ = ("_signers", "_order", "_threshold", "_admin")

    def __init__(self, signers: Iterable[str], threshold: int, admin: str):
        signers = list(signers) if signers is not None else []
        if not signers:
            raise EmptySignerListError()

        if (
            not isinstance(threshold, int)
            or isinstance(threshold, bool)
            or threshold < 1
            or threshold > len(signers)
        ):
            raise InvalidVoteThresholdError(
                f"InvalidVoteThreshold: {threshold!r} (signers={len(signers)})"
            )

        for position, identity in enumerate(signers):
            if is_null_address(identity):
                raise NullAddressError(f"NullAddress: signer at position {position}")
        if is_null_address(admin):
            raise NullAddressError("NullAddress: admin")

        order: List[str] = []
        seen = set()
        for position, identity in enumerate(signers):
            if not is_valid_address(identity):
                raise InvalidSignerAddressError(
                    f"Invalid signer address at position {position}: {identity!r}"
                )
            canonical = normalize_address(identity)
            if canonical in seen:
                raise DuplicateSignerError(f"DuplicateSigner: {canonical}")
            seen.add(canonical)
            order.append(canonical)

        if not is_valid_address(admin):
            raise InvalidSignerAddressError(f"Invalid admin address: {admin!r}")

        self._signers: FrozenSet[str] = frozenset(order)
        self._order: Tuple[str, ...] = tuple(order)
        self._threshold = threshold
        self._admin = normalize_address(admin)

        logger.info(
            f"Signer registry ready: {len(order)} signers, threshold {threshold}"
        )

    # ── Queries ───────────────────────────────────────────────────────

    def is_signer(self, identity: Any) -> bool:
        if not is_valid_address(identity):
            return False
        return normalize_address(identity) in self._signers

    def canonical(self, identity: Any) -> str:
        """Checksum form of *identity* (raises InvalidAddressError if malformed)."""
        return normalize_address(identity)

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def signers(self) -> Tuple[str, ...]:
        """Signers in deployment order."""
        return self._order

    @property
    def signer_count(self) -> int:
        return len(self._order)

    @property
    def admin(self) -> str:
        return self._admin

    def __contains__(self, identity: Any) -> bool:
        return self.is_signer(identity)

    def __len__(self) -> int:
        return len(self._order)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signers": list(self._order),
            "threshold": self._threshold,
            "admin": self._admin,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignerRegistry":
        return cls(data["signers"], data["threshold"], data["admin"])

    def __repr__(self) -> str:
        return f"<SignerRegistry signers={len(self._order)} threshold={self._threshold}>"
