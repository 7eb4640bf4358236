"""
composite_proofs.equality

Equality groups: sets of (statement_index, slot_index) references that
claim to hold the same secret scalar.

Groups are pure index correlation. They are canonicalised (refs sorted and
deduplicated inside a group, groups sorted) so the group set encodes the same
way regardless of the order the caller listed things in.

For blinding assignment overlapping groups are merged (union-find): a ref
that appears in two groups ties both groups to one blinding scalar.

Encoding: [[[s, slot], [s, slot], ...], ...]
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, List, NamedTuple, Sequence, Tuple

from .errors import DecodeError, MalformedSpec


class WitnessRef(NamedTuple):
    statement: int
    slot: int


EqualityGroup = Tuple[WitnessRef, ...]


def _ref(item: Any) -> WitnessRef:
    if isinstance(item, WitnessRef):
        return item
    if not isinstance(item, (tuple, list)) or len(item) != 2:
        raise MalformedSpec("witness reference must be a (statement, slot) pair", ctx={"ref": repr(item)})
    s, slot = item
    for v in (s, slot):
        if isinstance(v, bool) or not isinstance(v, int) or v < 0:
            raise MalformedSpec("witness reference indices must be non-negative ints", ctx={"ref": repr(item)})
    return WitnessRef(s, slot)


def make_group(refs: Iterable[Any]) -> EqualityGroup:
    """Canonical group from any iterable of (statement, slot) pairs."""
    group = tuple(sorted({_ref(r) for r in refs}))
    if len(group) < 2:
        raise MalformedSpec("an equality group needs at least two distinct references")
    return group


def equality_from_pairs(pairs: Sequence[Any]) -> EqualityGroup:
    """
    Build one group from a list of [statement, slot] pairs.

        equality_from_pairs([(0, 2), (1, 0)])
    """
    return make_group(pairs)


def canonical_groups(groups: Iterable[Iterable[Any]]) -> Tuple[EqualityGroup, ...]:
    return tuple(sorted({make_group(g) for g in groups}))


def merged_groups(groups: Iterable[EqualityGroup]) -> Tuple[EqualityGroup, ...]:
    """Union overlapping groups; result is canonical."""
    parent: Dict[WitnessRef, WitnessRef] = {}

    def find(x: WitnessRef) -> WitnessRef:
        parent.setdefault(x, x)
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for g in groups:
        first = find(g[0])
        for r in g[1:]:
            root = find(r)
            if root != first:
                parent[root] = first

    classes: Dict[WitnessRef, List[WitnessRef]] = {}
    for r in list(parent):
        classes.setdefault(find(r), []).append(r)
    return tuple(sorted(tuple(sorted(c)) for c in classes.values()))


def referenced_slots(groups: Iterable[EqualityGroup]) -> Dict[int, FrozenSet[int]]:
    """statement index -> slots named by any group."""
    out: Dict[int, set] = {}
    for g in groups:
        for r in g:
            out.setdefault(r.statement, set()).add(r.slot)
    return {k: frozenset(v) for k, v in out.items()}


def encode_groups(groups: Sequence[EqualityGroup]) -> List[List[List[int]]]:
    return [[[r.statement, r.slot] for r in g] for g in groups]


def decode_groups(raw: Any, path: str = "$.equalities") -> Tuple[EqualityGroup, ...]:
    if not isinstance(raw, list):
        raise DecodeError("expected a list of groups", path=path)
    groups = []
    for i, g in enumerate(raw):
        if not isinstance(g, list):
            raise DecodeError("expected a list of references", path=f"{path}[{i}]")
        try:
            groups.append(make_group(g))
        except MalformedSpec as e:
            raise DecodeError(e.msg, path=f"{path}[{i}]", cause=e) from e
    return canonical_groups(groups)


__all__ = [
    "WitnessRef",
    "EqualityGroup",
    "make_group",
    "equality_from_pairs",
    "canonical_groups",
    "merged_groups",
    "referenced_slots",
    "encode_groups",
    "decode_groups",
]
