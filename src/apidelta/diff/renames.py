"""Rename detection over the removed/added export pools.

Runs after every per-export comparison has finished, on the complete pools.
Candidates are only paired within the same kind.  Each pair is scored as

    score = 0.8 * signature_score + 0.2 * name_similarity

where ``signature_score`` is 1.0 when the normalized structural signatures
match exactly (the symbol's own name replaced by a placeholder) and at most
0.9 otherwise.  Pairs at or above the threshold are accepted greedily by
descending score; each candidate is used at most once.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from difflib import SequenceMatcher

import structlog

from apidelta.config.constants import (
    DEFAULT_RENAME_THRESHOLD,
    RENAME_INEXACT_SIGNATURE_CAP,
    RENAME_NAME_WEIGHT,
    RENAME_SIGNATURE_WEIGHT,
    SYMBOL_PLACEHOLDER,
)
from apidelta.diff.common import Site, make_change, structural_signature
from apidelta.diff.members import member_added, member_removed
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.model.types import SymbolNode

log = structlog.get_logger(__name__)

NodeComparer = Callable[[SymbolNode, SymbolNode], list[ApiChange]]


@dataclass(frozen=True, slots=True)
class RenameMatch:
    old: SymbolNode
    new: SymbolNode
    score: float


def normalized_signature(node: SymbolNode) -> str:
    """Structural signature with the node's own name replaced by a placeholder."""
    pattern = re.compile(rf"\b{re.escape(node.name)}\b")
    return pattern.sub(SYMBOL_PLACEHOLDER, structural_signature(node))


def name_similarity(a: str, b: str) -> float:
    return SequenceMatcher(None, a.lower(), b.lower()).ratio()


def signature_similarity(old: SymbolNode, new: SymbolNode) -> float:
    old_sig = normalized_signature(old)
    new_sig = normalized_signature(new)
    if old_sig == new_sig:
        return 1.0
    return RENAME_INEXACT_SIGNATURE_CAP * SequenceMatcher(None, old_sig, new_sig).ratio()


def rename_score(old: SymbolNode, new: SymbolNode) -> float:
    return RENAME_SIGNATURE_WEIGHT * signature_similarity(
        old, new
    ) + RENAME_NAME_WEIGHT * name_similarity(old.name, new.name)


def match_renames(
    removed: Sequence[SymbolNode],
    added: Sequence[SymbolNode],
    threshold: float = DEFAULT_RENAME_THRESHOLD,
) -> list[RenameMatch]:
    """Pair removed and added symbols of the same kind, best score first."""
    candidates: list[tuple[float, int, int]] = []
    for i, old in enumerate(removed):
        for j, new in enumerate(added):
            if old.kind != new.kind or old.name == new.name:
                continue
            score = rename_score(old, new)
            if score >= threshold:
                candidates.append((score, i, j))

    # Descending score; ties keep pool order
    candidates.sort(key=lambda c: (-c[0], c[1], c[2]))

    used_removed: set[int] = set()
    used_added: set[int] = set()
    matches: list[RenameMatch] = []
    for score, i, j in candidates:
        if i in used_removed or j in used_added:
            continue
        used_removed.add(i)
        used_added.add(j)
        matches.append(RenameMatch(removed[i], added[j], score))
    return matches


def detect_renames(
    removed: Sequence[SymbolNode],
    added: Sequence[SymbolNode],
    threshold: float = DEFAULT_RENAME_THRESHOLD,
    *,
    compare: NodeComparer | None = None,
    kind_changed: frozenset[str] = frozenset(),
) -> list[ApiChange]:
    """Resolve the pools into renamed, removed and added export changes.

    Args:
        removed: Exports present only in the old snapshot, in pool order.
        added: Exports present only in the new snapshot, in pool order.
        threshold: Minimum score for a rename.
        compare: Produces the nested changes between a renamed pair.
        kind_changed: Names whose kind changed; their changes are tagged.

    Returns:
        Renames first, then the remaining removals, then additions.
    """
    matches = match_renames(removed, added, threshold)
    renamed_old = {id(m.old) for m in matches}
    renamed_new = {id(m.new) for m in matches}
    context = ChangeContext()
    changes: list[ApiChange] = []

    for match in matches:
        old, new = match.old, match.new
        nested = compare(old, new) if compare is not None else []
        changes.append(
            make_change(
                Site("export", new.path, new.kind),
                "renamed",
                tags=("field-renamed",),
                context=ChangeContext(
                    rename_confidence=round(match.score, 4),
                    old_name=old.name,
                    new_name=new.name,
                ),
                explanation=f"'{old.name}' was renamed to '{new.name}'",
                before=old.signature,
                after=new.signature,
                old_node=old,
                new_node=new,
                nested=nested,
            )
        )

    for node in removed:
        if id(node) in renamed_old:
            continue
        change = member_removed(
            Site("export", node.path, node.kind),
            name=node.name,
            optional=False,
            context=context,
            declaration=node.signature,
            node=node,
        )
        changes.append(_tag_kind_change(change, node.name, kind_changed))

    for node in added:
        if id(node) in renamed_new:
            continue
        change = member_added(
            Site("export", node.path, node.kind),
            name=node.name,
            optional=False,
            context=context,
            track_required=False,
            declaration=node.signature,
            node=node,
        )
        changes.append(_tag_kind_change(change, node.name, kind_changed))

    if matches:
        log.debug(
            "renames_detected",
            count=len(matches),
            pairs=[f"{m.old.name}->{m.new.name}" for m in matches],
        )
    return changes


def _tag_kind_change(change: ApiChange, name: str, kind_changed: frozenset[str]) -> ApiChange:
    if name not in kind_changed:
        return change
    return replace(change, descriptor=change.descriptor.with_tags("kind-changed"))
