"""Dependency analysis for cone constraints.

The analysis returns one of two result types so a cyclic graph can never be
mistaken for a total order: :class:`OrderedDependencies` carries ``order``
while :class:`CyclicDependencies` only offers ``partial_order`` next to the
detected ``cycles``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Sequence, Set, Tuple, Union

from ..logging_utils import apply_debug_logging
from ..types import ConeConstraint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderedDependencies:
    """Acyclic result: ``order`` lists every constraint after its dependencies."""

    order: Tuple[ConeConstraint, ...]
    parallel_groups: Tuple[Tuple[ConeConstraint, ...], ...]
    missing: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    kind: Literal["ordered"] = "ordered"

    @property
    def has_cycles(self) -> bool:
        return False


@dataclass(frozen=True)
class CyclicDependencies:
    """Cyclic result: ``partial_order`` omits every constraint on a cycle."""

    partial_order: Tuple[ConeConstraint, ...]
    cycles: Tuple[Tuple[str, ...], ...]
    parallel_groups: Tuple[Tuple[ConeConstraint, ...], ...]
    missing: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    kind: Literal["cyclic"] = "cyclic"

    @property
    def has_cycles(self) -> bool:
        return True

    @property
    def unresolved(self) -> Set[str]:
        return {cid for cycle in self.cycles for cid in cycle}


DependencyAnalysis = Union[OrderedDependencies, CyclicDependencies]


def _parallel_groups(constraints: Sequence[ConeConstraint]) -> Tuple[Tuple[ConeConstraint, ...], ...]:
    groups: Dict[Tuple[str, ...], List[ConeConstraint]] = {}
    for constraint in constraints:
        signature = tuple(sorted(set(constraint.dependencies)))
        groups.setdefault(signature, []).append(constraint)
    return tuple(tuple(group) for group in groups.values() if len(group) > 1)


def analyze_constraint_dependencies(constraints: Sequence[ConeConstraint]) -> DependencyAnalysis:
    by_id: Dict[str, ConeConstraint] = {}
    for constraint in constraints:
        by_id.setdefault(constraint.id, constraint)

    graph = {cid: list(dict.fromkeys(c.dependencies)) for cid, c in by_id.items()}
    missing = {
        cid: tuple(dep for dep in deps if dep not in by_id)
        for cid, deps in graph.items()
        if any(dep not in by_id for dep in deps)
    }

    visited: Set[str] = set()
    stack: List[str] = []
    on_stack: Set[str] = set()
    post_order: List[str] = []
    cycles: List[Tuple[str, ...]] = []

    def visit(cid: str) -> None:
        visited.add(cid)
        stack.append(cid)
        on_stack.add(cid)
        for dep in graph[cid]:
            if dep not in by_id:
                continue
            if dep in on_stack:
                cycle = tuple(stack[stack.index(dep):])
                logger.warning("Constraint dependency cycle: %s", " -> ".join(cycle + (dep,)))
                cycles.append(cycle)
            elif dep not in visited:
                visit(dep)
        stack.pop()
        on_stack.discard(cid)
        post_order.append(cid)

    for cid in by_id:
        if cid not in visited:
            visit(cid)

    groups = _parallel_groups(list(by_id.values()))
    logger.info(
        "Analyzed %d constraint(s): %d cycle(s), %d parallel group(s), %d with missing dependencies",
        len(by_id),
        len(cycles),
        len(groups),
        len(missing),
    )

    if not cycles:
        return OrderedDependencies(
            order=tuple(by_id[cid] for cid in post_order),
            parallel_groups=groups,
            missing=missing,
        )

    on_cycle = {cid for cycle in cycles for cid in cycle}
    return CyclicDependencies(
        partial_order=tuple(by_id[cid] for cid in post_order if cid not in on_cycle),
        cycles=tuple(cycles),
        parallel_groups=groups,
        missing=missing,
    )


apply_debug_logging(globals(), logger=logger, wrap_methods=False)


__all__ = [
    "CyclicDependencies",
    "DependencyAnalysis",
    "OrderedDependencies",
    "analyze_constraint_dependencies",
]
