"""Drop variants that sit too close to a neighbour.

Given a position-sorted stream, two records ``a`` then ``b`` on the same
chromosome are far enough apart when::

    max_end + distance <= start(b)

where ``max_end`` is the largest end coordinate seen so far on the chromosome,
so that a run of three or more overlapping spans is treated as one cluster even
though only adjacent pairs are compared. Records on different chromosomes are
never compared.

Every record sits between two such decisions (the one with its predecessor and
the one with its successor) and is emitted only if both say "keep". The first
record of the stream only has a right-hand decision, the last only a left-hand
one. Emission is therefore one step behind the scan; a decision, once made, is
never revisited.

Input sortedness is the caller's responsibility and is not checked.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from .errors import InvalidConfigurationError
from .models import VariantRecord
from .trim import trim_alleles
from .variants import index_if_bgzipped, iter_variant_records, open_vcf_in, open_vcf_out, write_records

logger = logging.getLogger(__name__)

# Gap histogram bin edges (bp). Gaps are clipped into [GAP_BINS[0], GAP_BINS[-1]).
GAP_BINS = np.array([-100, 0, 1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 10_001])


@dataclass
class FilterStats:
    records_total: int = 0
    records_kept: int = 0
    chromosomes: int = 0
    gap_counts: np.ndarray = field(default_factory=lambda: np.zeros(len(GAP_BINS) - 1, dtype=np.int64))

    @property
    def records_discarded(self) -> int:
        return self.records_total - self.records_kept

    def add_gap(self, gap: int) -> None:
        clipped = int(np.clip(gap, GAP_BINS[0], GAP_BINS[-1] - 1))
        self.gap_counts += np.histogram([clipped], bins=GAP_BINS)[0]

    def as_dict(self) -> Dict[str, object]:
        return {
            "records_total": self.records_total,
            "records_kept": self.records_kept,
            "records_discarded": self.records_discarded,
            "chromosomes": self.chromosomes,
            "gap_hist": {
                "bin_edges": GAP_BINS.tolist(),
                "counts": self.gap_counts.tolist(),
            },
        }


class ProximityFilter:
    """Streaming filter keeping records at least ``distance`` bp from their neighbours.

    Parameters
    ----------
    distance:
        Minimum gap between the end of one record and the start of the next.
    trim:
        If True, spans are computed on trimmed alleles (shared leading and
        trailing bases do not count towards the span).
    """

    def __init__(self, distance: int, *, trim: bool = False) -> None:
        if int(distance) < 0:
            raise InvalidConfigurationError(f"distance must be >= 0 (got {distance})")
        self.distance = int(distance)
        self.trim = bool(trim)
        self.stats = FilterStats()
        self._max_end = 0

    def span(self, record: VariantRecord) -> Tuple[int, int]:
        """Return ``(start, end)`` of ``record``, half-open."""
        if not self.trim:
            return record.pos, record.pos + record.rlen
        t = trim_alleles(record)
        return record.pos + t.ltrim, record.pos + record.rlen - t.rtrim

    def _keep(self, a: VariantRecord, b: VariantRecord) -> bool:
        """Decide the pair (a, b) and fold ``b`` into the running max end."""
        bstart, bend = self.span(b)
        if a.rid != b.rid:
            self._max_end = bend
            self.stats.chromosomes += 1
            return True
        last_end = self._max_end
        self._max_end = max(self._max_end, bend)
        self.stats.add_gap(bstart - last_end)
        return last_end + self.distance <= bstart

    def _emit(self, record: VariantRecord) -> VariantRecord:
        self.stats.records_kept += 1
        return record

    def filter(self, records: Iterable[VariantRecord]) -> Iterator[VariantRecord]:
        """Yield the kept records, in input order, as the same objects.

        Each call starts a fresh pass; ``stats`` describes the most recent one.
        """
        self.stats = FilterStats()
        self._max_end = 0
        it = iter(records)
        slots: List[Optional[VariantRecord]] = [None, None, None]

        nv = 0
        while nv < 3:
            rec = next(it, None)
            if rec is None:
                break
            slots[nv] = rec
            nv += 1
        self.stats.records_total += nv

        if nv == 0:
            return
        self.stats.chromosomes += 1
        if nv == 1:
            yield self._emit(slots[0])
            return

        self._max_end = self.span(slots[0])[1]
        if nv == 2:
            # the first record is kept either way
            keep = self._keep(slots[0], slots[1])
            yield self._emit(slots[0])
            if keep:
                yield self._emit(slots[1])
            return

        head = 0  # slot of the record before the pair being decided
        kp = self._keep(slots[0], slots[1])
        if kp:
            yield self._emit(slots[0])

        while True:
            b = slots[(head + 1) % 3]
            c = slots[(head + 2) % 3]
            kn = self._keep(b, c)
            if kp and kn:
                yield self._emit(b)
            kp = kn

            # rotate: the old head slot is the free one
            head = (head + 1) % 3
            rec = next(it, None)
            if rec is None:
                break
            slots[(head + 2) % 3] = rec
            self.stats.records_total += 1

        if kp:
            yield self._emit(slots[(head + 1) % 3])


def filter_vcf(
    *,
    vcf_path: str | Path,
    out_path: str | Path,
    distance: int,
    trim: bool = False,
    progress: bool = False,
) -> Dict[str, object]:
    """Filter a sorted VCF and write the kept records with the input header."""
    t0 = time.time()
    flt = ProximityFilter(distance, trim=trim)

    with open_vcf_in(vcf_path) as vin:
        with open_vcf_out(out_path, vin.header) as vout:
            records = iter_variant_records(vin, progress=progress, desc="Filtering records")
            write_records(vout, flt.filter(records))
    index_if_bgzipped(out_path)

    logger.info(
        "Kept %d of %d records (distance=%d, trim=%s)",
        flt.stats.records_kept,
        flt.stats.records_total,
        flt.distance,
        flt.trim,
    )

    return {
        "vcf_path": str(vcf_path),
        "out_path": str(out_path),
        "distance": flt.distance,
        "trim": flt.trim,
        "counts": flt.stats.as_dict(),
        "runtime_seconds": float(time.time() - t0),
    }
