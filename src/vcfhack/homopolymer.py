"""Homopolymer / repeat-run annotation for biallelic indels.

For an indel, count the reference bases next to the event that continue the
sequence inserted or deleted. Two counting policies are available and a run
uses exactly one of them:

``cyclic`` (default)
    The repeat unit is the trimmed reference allele, or the trimmed alternate
    for a pure insertion. Bases before the event are matched against the unit
    read backwards from its last base; bases after the event against the unit
    read forwards from its first base, wrapping around in both directions.
    Inserting ``CA`` into ``...CACACA|G`` gives 6.

``strict``
    Only single-base events (every base of both trimmed alleles identical) are
    scored; the result is the length of the run of that base through the event,
    deleted reference bases included. Other indels are not annotated.

The result is written to INFO/HRun.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .errors import MalformedRecordError
from .models import VariantRecord
from .reference import ReferenceGenome
from .trim import trim_alleles, trimmed_record
from .validation import validate_hp_options
from .variants import index_if_bgzipped, iter_variant_records, open_vcf_in, open_vcf_out

logger = logging.getLogger(__name__)

HRUN_TAG = "HRun"
HRUN_DESCRIPTION = "Homopolymer run in ref in bp (not including variant)"
HRUN_DESCRIPTION_STRICT = "Homopolymer run bases in the reference"

DEFAULT_WINDOW = 100


def calc_homopolymer(ref: str, alt: str, pos: int, reg: str) -> int:
    """Count bases of ``reg`` around ``pos`` that continue the indel's repeat unit.

    ``ref``/``alt`` are the trimmed alleles and ``pos`` is where the trimmed
    reference allele starts within ``reg``. The result may be shorter than the
    variant itself.
    """
    unit = ref if ref else alt
    rl = len(unit)
    if rl == 0:
        return 0

    hp = 0
    i, k = pos - 1, rl - 1
    while i >= 0 and reg[i] == unit[k]:
        hp += 1
        i -= 1
        k = k - 1 if k else rl - 1

    i, k = pos + len(ref), 0
    while i < len(reg) and reg[i] == unit[k]:
        hp += 1
        i += 1
        k = (k + 1) % rl

    return hp


def bases_match(ref: str, alt: str) -> bool:
    """True if every base of both alleles is the same single base."""
    allele = ref if ref else alt
    if not allele:
        return False
    b = allele[0]
    return all(c == b for c in ref) and all(c == b for c in alt)


def calc_homopolymer_strict(ref: str, alt: str, pos: int, reg: str) -> int:
    """Length of the run of the indel's base through ``pos`` (call only if ``bases_match``)."""
    b = ref[0] if ref else alt[0]
    i = pos - 1
    while i >= 0 and reg[i] == b:
        i -= 1
    j = pos + len(ref)
    while j < len(reg) and reg[j] == b:
        j += 1
    return j - i - 1


@dataclass
class AnnotationStats:
    records_total: int = 0
    records_annotated: int = 0
    skipped_not_biallelic: int = 0
    skipped_substitution: int = 0
    skipped_not_homopolymer: int = 0
    skipped_below_min: int = 0
    hrun_hist: Dict[int, int] = field(default_factory=dict)

    def add_hrun(self, hp: int) -> None:
        self.hrun_hist[hp] = self.hrun_hist.get(hp, 0) + 1

    def as_dict(self) -> Dict[str, object]:
        return {
            "records_total": self.records_total,
            "records_annotated": self.records_annotated,
            "skipped_not_biallelic": self.skipped_not_biallelic,
            "skipped_substitution": self.skipped_substitution,
            "skipped_not_homopolymer": self.skipped_not_homopolymer,
            "skipped_below_min": self.skipped_below_min,
            "hrun_hist": {str(k): v for k, v in sorted(self.hrun_hist.items())},
        }


class HomopolymerAnnotator:
    """Computes HRun for records against a reference.

    Parameters
    ----------
    reference:
        Indexed reference genome.
    window:
        Bases of reference context fetched on each side of the event.
    policy:
        ``"cyclic"`` or ``"strict"``, see module docstring.
    """

    def __init__(
        self,
        reference: ReferenceGenome,
        *,
        window: int = DEFAULT_WINDOW,
        policy: str = "cyclic",
        min_hrun: int = 0,
    ) -> None:
        validate_hp_options(window=window, policy=policy, min_hrun=min_hrun)
        self.reference = reference
        self.window = int(window)
        self.policy = policy
        self.min_hrun = int(min_hrun)
        self.stats = AnnotationStats()

    def hrun(self, record: VariantRecord) -> Optional[int]:
        """Return the run length for an eligible indel, else None.

        Every record is placed on its chromosome first, so a record outside
        the reference is fatal even when it would not be annotated.
        """
        chromlen = self.reference.length(record.chrom)
        if record.pos + record.rlen > chromlen:
            raise MalformedRecordError(
                f"Ref allele goes out of bounds: {record.chrom} {record.pos + 1} {record.id} "
                f"{record.ref} [chromlen: {chromlen}]",
                chrom=record.chrom,
                pos1=record.pos + 1,
                record_id=record.id,
            )

        if record.n_allele != 2:
            self.stats.skipped_not_biallelic += 1
            return None

        event = trimmed_record(record, trim_alleles(record))
        ref, alt = event.alleles
        if len(ref) == len(alt):
            self.stats.skipped_substitution += 1
            return None
        if self.policy == "strict" and not bases_match(ref, alt):
            self.stats.skipped_not_homopolymer += 1
            return None

        # start/end are inclusive
        start = max(event.pos - self.window, 0)
        end = min(event.pos + len(ref) + self.window, chromlen - 1)
        win = self.reference.fetch_region(record.chrom, start, end)

        if self.policy == "strict":
            return calc_homopolymer_strict(ref, alt, event.pos - start, win.seq)
        return calc_homopolymer(ref, alt, event.pos - start, win.seq)

    def annotate(self, record: VariantRecord) -> Optional[int]:
        """Return the value to write to INFO/HRun, or None to leave the record as is."""
        self.stats.records_total += 1
        hp = self.hrun(record)
        if hp is None:
            return None
        self.stats.add_hrun(hp)
        if hp < self.min_hrun:
            self.stats.skipped_below_min += 1
            return None
        self.stats.records_annotated += 1
        return hp


def annotate_vcf(
    *,
    vcf_path: str | Path,
    ref_fa: str | Path,
    out_path: str | Path,
    window: int = DEFAULT_WINDOW,
    policy: str = "cyclic",
    min_hrun: int = 0,
    progress: bool = False,
) -> Dict[str, object]:
    """Annotate every record of a VCF with INFO/HRun where applicable; all records are written."""
    t0 = time.time()

    with ReferenceGenome(ref_fa) as reference:
        annotator = HomopolymerAnnotator(reference, window=window, policy=policy, min_hrun=min_hrun)

        with open_vcf_in(vcf_path) as vin:
            if HRUN_TAG not in vin.header.info:
                vin.header.info.add(
                    HRUN_TAG,
                    number=1,
                    type="Integer",
                    description=HRUN_DESCRIPTION_STRICT if policy == "strict" else HRUN_DESCRIPTION,
                )
            with open_vcf_out(out_path, vin.header) as vout:
                for rec in iter_variant_records(vin, progress=progress, desc="Annotating records"):
                    hp = annotator.annotate(rec)
                    if hp is not None:
                        rec.source.info[HRUN_TAG] = hp
                    vout.write(rec.source)
    index_if_bgzipped(out_path)

    stats = annotator.stats
    logger.info(
        "Annotated %d of %d records with %s (policy=%s, window=%d)",
        stats.records_annotated,
        stats.records_total,
        HRUN_TAG,
        policy,
        window,
    )

    return {
        "vcf_path": str(vcf_path),
        "ref_fa": str(ref_fa),
        "out_path": str(out_path),
        "window": int(window),
        "policy": policy,
        "min_hrun": int(min_hrun),
        "counts": stats.as_dict(),
        "runtime_seconds": float(time.time() - t0),
    }
