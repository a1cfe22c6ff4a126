import random
from typing import List

import pytest

from vcfhack.errors import InvalidConfigurationError
from vcfhack.models import VariantRecord
from vcfhack.proximity import ProximityFilter


def make_record(pos: int, end: int, *, rid: int = 0, rec_id: str = "") -> VariantRecord:
    rlen = end - pos
    return VariantRecord(
        rid=rid,
        chrom=f"chr{rid + 1}",
        pos=pos,
        rlen=rlen,
        alleles=("A" * rlen, "C"),
        id=rec_id or f"{rid}:{pos}",
    )


def run(records: List[VariantRecord], distance: int, **kwargs) -> List[VariantRecord]:
    return list(ProximityFilter(distance, **kwargs).filter(records))


def ids(records: List[VariantRecord]) -> List[str]:
    return [r.id for r in records]


def test_empty_stream():
    assert run([], 10) == []


def test_single_record_is_kept():
    rec = make_record(5, 6)
    assert run([rec], 1000) == [rec]


def test_two_records_far_apart_are_both_kept():
    recs = [make_record(100, 105), make_record(200, 201)]
    assert run(recs, 5) == recs


def test_two_records_too_close_keeps_only_first():
    a = make_record(100, 105)
    b = make_record(106, 110)
    flt = ProximityFilter(5)
    assert list(flt.filter([a, b])) == [a]
    assert flt._max_end == 110


def test_two_records_on_different_chromosomes_are_both_kept():
    recs = [make_record(100, 105, rid=0), make_record(101, 102, rid=1)]
    assert run(recs, 50) == recs


def test_three_overlapping_records_are_all_dropped():
    recs = [make_record(10, 20), make_record(15, 25), make_record(22, 24)]
    assert run(recs, 0) == []


def test_cluster_in_the_middle_is_dropped_on_both_sides():
    recs = [
        make_record(10, 11, rec_id="a"),
        make_record(50, 51, rec_id="b"),
        make_record(52, 53, rec_id="c"),
        make_record(100, 101, rec_id="d"),
    ]
    assert ids(run(recs, 5)) == ["a", "d"]


def test_long_span_shadows_later_records():
    # b spans 10..50 so c and d are too close to it even though c..d alone would pass
    recs = [
        make_record(0, 1, rec_id="a"),
        make_record(10, 50, rec_id="b"),
        make_record(20, 21, rec_id="c"),
        make_record(40, 41, rec_id="d"),
        make_record(100, 101, rec_id="e"),
    ]
    assert ids(run(recs, 5)) == ["a", "e"]


def test_chromosome_change_resets_max_end():
    recs = [
        make_record(0, 100, rid=0, rec_id="a"),
        make_record(5, 6, rid=1, rec_id="b"),
        make_record(50, 51, rid=1, rec_id="c"),
    ]
    assert ids(run(recs, 10)) == ["a", "b", "c"]


def test_distance_zero_allows_adjacent_spans():
    recs = [make_record(10, 20), make_record(20, 30), make_record(30, 31)]
    assert run(recs, 0) == recs


def test_kept_records_are_the_same_objects():
    recs = [make_record(p, p + 1) for p in (10, 100, 200, 300)]
    out = run(recs, 5)
    assert all(o is r for o, r in zip(out, recs))


def test_trimmed_spans():
    # ACGT -> AGGT trims to C -> G at 11, so the span is [11, 12)
    a = VariantRecord(rid=0, chrom="chr1", pos=10, rlen=4, alleles=("ACGT", "AGGT"), id="a")
    b = VariantRecord(rid=0, chrom="chr1", pos=15, rlen=1, alleles=("C", "G"), id="b")
    c = VariantRecord(rid=0, chrom="chr1", pos=100, rlen=1, alleles=("C", "G"), id="c")

    assert ProximityFilter(2, trim=True).span(a) == (11, 12)
    assert ProximityFilter(2).span(a) == (10, 14)

    assert ids(run([a, b, c], 2)) == ["c"]
    assert ids(run([a, b, c], 2, trim=True)) == ["a", "b", "c"]


def test_negative_distance_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        ProximityFilter(-1)


def test_stats_count_kept_and_discarded():
    recs = [make_record(10, 11), make_record(12, 13), make_record(100, 101), make_record(5, 6, rid=1)]
    flt = ProximityFilter(5)
    out = list(flt.filter(recs))
    assert len(out) == 2
    assert flt.stats.records_total == 4
    assert flt.stats.records_kept == 2
    assert flt.stats.records_discarded == 2
    assert flt.stats.chromosomes == 2
    assert int(flt.stats.gap_counts.sum()) == 2


def _random_stream(seed: int, n: int = 300) -> List[VariantRecord]:
    rng = random.Random(seed)
    recs: List[VariantRecord] = []
    rid, pos = 0, 0
    for i in range(n):
        if rng.random() < 0.02:
            rid += 1
            pos = 0
        pos += rng.randint(0, 25)
        recs.append(make_record(pos, pos + rng.randint(1, 6), rid=rid, rec_id=str(i)))
    return recs


@pytest.mark.parametrize("seed", [1, 2, 3])
@pytest.mark.parametrize("distance", [0, 3, 10])
def test_kept_records_respect_distance(seed, distance):
    out = run(_random_stream(seed), distance)
    for a, b in zip(out, out[1:]):
        if a.rid == b.rid:
            assert a.pos + a.rlen + distance <= b.pos


@pytest.mark.parametrize("seed", [4, 5])
def test_shifting_coordinates_does_not_change_decisions(seed):
    recs = _random_stream(seed)
    shifted = [
        VariantRecord(rid=r.rid, chrom=r.chrom, pos=r.pos + 12345, rlen=r.rlen, alleles=r.alleles, id=r.id)
        for r in recs
    ]
    assert ids(run(recs, 7)) == ids(run(shifted, 7))


def test_each_filter_call_starts_fresh():
    recs = [make_record(0, 100, rec_id="a"), make_record(200, 201, rec_id="b"), make_record(300, 301, rec_id="c")]
    flt = ProximityFilter(5)
    first = ids(flt.filter(recs))
    second = ids(flt.filter(recs))
    assert first == second == ["a", "b", "c"]
    assert flt.stats.records_total == 3
    assert flt.stats.records_kept == 3
    assert int(flt.stats.gap_counts.sum()) == 2
