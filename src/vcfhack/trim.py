"""Allele canonicalization by trimming bases shared with the reference.

A trim ``(ltrim, rtrim)`` is applied uniformly to the reference and to every
alternate of a record, so it can only remove bases that the reference shares
with *all* alternates. Each alternate is trimmed on its own first (left, then
right on what remains) and the record-level trim is the per-side minimum.

Example
-------
>>> from vcfhack.models import VariantRecord
>>> rec = VariantRecord(rid=0, chrom="chr1", pos=0, rlen=7, alleles=("GATTACA", "GATCACA"))
>>> trim_alleles(rec)
TrimResult(ltrim=3, rtrim=3)
"""

from __future__ import annotations

from typing import Tuple

from .errors import MalformedRecordError
from .models import TrimResult, VariantRecord


def _reflen(record: VariantRecord) -> int:
    return min(int(record.rlen), len(record.ref))


def trimmed_alt(record: VariantRecord, aid: int) -> Tuple[int, int, int]:
    """Trim one alternate against the reference.

    Returns ``(shift, reflen, altlen)``: the number of bases trimmed from the
    left, and the reference/alternate lengths left after trimming both ends.
    """
    ref = record.ref
    alt = record.alleles[aid]
    reflen = _reflen(record)
    altlen = len(alt)
    shift = 0

    while reflen and altlen and ref[shift] == alt[shift]:
        shift += 1
        reflen -= 1
        altlen -= 1

    # right trim only looks at what the left trim left behind
    while reflen and altlen and ref[shift + reflen - 1] == alt[shift + altlen - 1]:
        reflen -= 1
        altlen -= 1

    return shift, reflen, altlen


def trim_alleles(record: VariantRecord) -> TrimResult:
    """Compute the trim shared by every alternate of ``record``."""
    if record.n_allele < 2:
        raise MalformedRecordError(
            f"Record has no alternate allele: {record.chrom} {record.pos + 1} {record.id} {record.ref}",
            chrom=record.chrom,
            pos1=record.pos + 1,
            record_id=record.id,
        )

    reflen = _reflen(record)
    ltrim = rtrim = reflen
    for aid in range(1, record.n_allele):
        shift, rlen2, _ = trimmed_alt(record, aid)
        ltrim = min(ltrim, shift)
        rtrim = min(rtrim, reflen - (shift + rlen2))

    return TrimResult(ltrim=ltrim, rtrim=rtrim)


def trim_allele(allele: str, trim: TrimResult) -> str:
    return allele[trim.ltrim : len(allele) - trim.rtrim]


def trimmed_alleles(record: VariantRecord, trim: TrimResult) -> Tuple[str, ...]:
    """Apply ``trim`` to the reference and every alternate."""
    return tuple(trim_allele(a, trim) for a in record.alleles)


def trimmed_record(record: VariantRecord, trim: TrimResult) -> VariantRecord:
    """Return a copy of ``record`` with ``trim`` applied (position shifted right)."""
    return VariantRecord(
        rid=record.rid,
        chrom=record.chrom,
        pos=record.pos + trim.ltrim,
        rlen=_reflen(record) - trim.ltrim - trim.rtrim,
        alleles=trimmed_alleles(record, trim),
        id=record.id,
        source=record.source,
    )
