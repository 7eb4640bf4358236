import pytest

from composite_proofs.equality import (
    WitnessRef,
    canonical_groups,
    decode_groups,
    encode_groups,
    equality_from_pairs,
    make_group,
    merged_groups,
    referenced_slots,
)
from composite_proofs.errors import DecodeError, MalformedSpec


def test_group_is_sorted_and_deduplicated():
    g = make_group([(1, 0), (0, 2), (1, 0)])
    assert g == (WitnessRef(0, 2), WitnessRef(1, 0))
    assert equality_from_pairs([[1, 0], [0, 2]]) == g


def test_group_needs_two_distinct_refs():
    with pytest.raises(MalformedSpec):
        make_group([(0, 1)])
    with pytest.raises(MalformedSpec):
        make_group([(0, 1), (0, 1)])


def test_bad_refs_rejected():
    for bad in ([(0, -1), (1, 0)], [(True, 0), (1, 0)], [(0,), (1, 0)], [("a", 0), (1, 0)]):
        with pytest.raises(MalformedSpec):
            make_group(bad)


def test_canonical_groups_ignore_listing_order():
    a = canonical_groups([[(2, 0), (0, 1)], [(1, 1), (0, 0)]])
    b = canonical_groups([[(0, 0), (1, 1)], [(0, 1), (2, 0)], [(1, 1), (0, 0)]])
    assert a == b
    assert len(a) == 2


def test_overlapping_groups_merge():
    groups = canonical_groups([[(0, 0), (1, 0)], [(1, 0), (2, 3)], [(4, 0), (5, 0)]])
    merged = merged_groups(groups)
    assert merged == (
        (WitnessRef(0, 0), WitnessRef(1, 0), WitnessRef(2, 3)),
        (WitnessRef(4, 0), WitnessRef(5, 0)),
    )


def test_referenced_slots():
    groups = canonical_groups([[(0, 0), (1, 0)], [(0, 2), (1, 0)]])
    assert referenced_slots(groups) == {0: frozenset({0, 2}), 1: frozenset({0})}


def test_group_encoding():
    groups = canonical_groups([[(1, 0), (0, 2)]])
    raw = encode_groups(groups)
    assert raw == [[[0, 2], [1, 0]]]
    assert decode_groups(raw) == groups


def test_decode_groups_reports_path():
    with pytest.raises(DecodeError) as ei:
        decode_groups([[[0, 1]]])
    assert ei.value.ctx["path"] == "$.equalities[0]"
    with pytest.raises(DecodeError):
        decode_groups("nope")
