"""
Cut Execution

Implements:
  - CutExecutor: interface of the collaborator that applies an approved
    change set to the managed registry
  - FacetRegistry: in-memory selector → facet table with diamond-cut rules,
    used when no external executor is wired in
"""

from typing import Any, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from ..clock import Clock, SystemClock
from ..constants import NULL_ADDRESS
from ..crypto.address import is_null_address, normalize_address
from ..logger import get_logger
from .errors import FacetCutError
from .proposals import ChangeSet, FacetCut, FacetCutAction, InitCall

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXECUTOR INTERFACE
# ══════════════════════════════════════════════════════════════════════

@runtime_checkable
class CutExecutor(Protocol):
    """
    Applies an approved change set.

    Return ``False`` or raise to reject; either aborts the vote that
    triggered execution.
    """

    def apply_registry_change(self, change_set: ChangeSet) -> Optional[bool]:
        ...


ExecutorLike = Union[CutExecutor, Callable[[ChangeSet], Optional[bool]]]


def resolve_executor(executor: ExecutorLike) -> Callable[[ChangeSet], Optional[bool]]:
    """Accept either an object with ``apply_registry_change`` or a plain callable."""
    method = getattr(executor, "apply_registry_change", None)
    if callable(method):
        return method
    if callable(executor):
        return executor
    raise TypeError(
        f"Cut executor must provide apply_registry_change() or be callable, "
        f"got {type(executor).__name__}"
    )


# ══════════════════════════════════════════════════════════════════════
#  FACET REGISTRY
# ══════════════════════════════════════════════════════════════════════

Initializer = Callable[[bytes], Any]


class FacetRegistry:
    """
    In-memory diamond: maps function selectors to facet addresses.

    Cut rules:
        ADD      selectors must be unbound; facet must not be the zero address
        REPLACE  selectors must be bound to a different facet
        REMOVE   selectors must be bound; facet must be the zero address

    All cuts of a change set are validated against a working copy first, so
    a rejected change set leaves the table untouched.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._selectors: Dict[str, str] = {}      # selector → facet
        self._initializers: Dict[str, Initializer] = {}
        self._cut_log: List[Dict[str, Any]] = []

    # ── Initializers ──────────────────────────────────────────────────

    def register_initializer(self, target: str, fn: Initializer) -> None:
        """Register the code run for an InitCall addressed to *target*."""
        self._initializers[normalize_address(target)] = fn

    # ── Cut ───────────────────────────────────────────────────────────

    def apply_registry_change(self, change_set: ChangeSet) -> bool:
        working = dict(self._selectors)
        for cut in change_set.cuts:
            self._apply_cut(working, cut)

        if change_set.init is not None:
            self._run_init(change_set.init)

        self._selectors = working
        self._cut_log.append({
            "digest": change_set.digest,
            "cuts": len(change_set.cuts),
            "selectors": change_set.selector_count,
            "appliedAt": self._clock.now(),
        })
        logger.info(
            f"Diamond cut applied: {len(change_set.cuts)} cut(s), "
            f"{change_set.selector_count} selector(s) [{change_set.digest[:10]}]"
        )
        return True

    @staticmethod
    def _apply_cut(working: Dict[str, str], cut: FacetCut) -> None:
        facet = cut.facet_address

        if cut.action == FacetCutAction.ADD:
            if is_null_address(facet):
                raise FacetCutError("Add facet can't be address(0)")
            for selector in cut.function_selectors:
                if selector in working:
                    raise FacetCutError(f"Can't add function that already exists: {selector}")
                working[selector] = facet

        elif cut.action == FacetCutAction.REPLACE:
            if is_null_address(facet):
                raise FacetCutError("Replace facet can't be address(0)")
            for selector in cut.function_selectors:
                current = working.get(selector)
                if current is None:
                    raise FacetCutError(f"Can't replace function that doesn't exist: {selector}")
                if current == facet:
                    raise FacetCutError(f"Can't replace function with same function: {selector}")
                working[selector] = facet

        elif cut.action == FacetCutAction.REMOVE:
            if not is_null_address(facet):
                raise FacetCutError("Remove facet address must be address(0)")
            for selector in cut.function_selectors:
                if selector not in working:
                    raise FacetCutError(f"Can't remove function that doesn't exist: {selector}")
                del working[selector]

    def _run_init(self, init: InitCall) -> None:
        fn = self._initializers.get(init.target)
        if fn is None:
            raise FacetCutError(f"Init address has no code: {init.target}")
        fn(init.calldata)

    # ── Queries ───────────────────────────────────────────────────────

    def facet_address(self, selector: str) -> str:
        """Facet bound to *selector*, or the zero address."""
        return self._selectors.get(selector.lower(), normalize_address(NULL_ADDRESS))

    def facet_addresses(self) -> List[str]:
        seen: List[str] = []
        for facet in self._selectors.values():
            if facet not in seen:
                seen.append(facet)
        return seen

    def facet_function_selectors(self, facet: str) -> List[str]:
        facet = normalize_address(facet)
        return [s for s, f in self._selectors.items() if f == facet]

    def facets(self) -> List[Dict[str, Any]]:
        return [
            {"facetAddress": f, "functionSelectors": self.facet_function_selectors(f)}
            for f in self.facet_addresses()
        ]

    @property
    def cut_count(self) -> int:
        return len(self._cut_log)

    @property
    def cut_log(self) -> List[Dict[str, Any]]:
        return list(self._cut_log)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectors": dict(self._selectors),
            "cutLog": list(self._cut_log),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], clock: Optional[Clock] = None) -> "FacetRegistry":
        registry = cls(clock)
        registry._selectors = {
            s.lower(): normalize_address(f) for s, f in data.get("selectors", {}).items()
        }
        registry._cut_log = list(data.get("cutLog", []))
        return registry

    def __repr__(self) -> str:
        return (
            f"<FacetRegistry selectors={len(self._selectors)} "
            f"facets={len(self.facet_addresses())} cuts={len(self._cut_log)}>"
        )
