"""Extract flanking sequence windows around each allele of each record.

For a record at ``pos`` with trim ``(ltrim, rtrim)`` the trimmed event starts at
``tpos = pos + ltrim`` and covers ``trlen = rlen - ltrim - rtrim`` reference
bases. Each emitted window is::

    chrom[start:tpos] + trimmed_allele + chrom[tpos + trlen:end]

with ``start = max(0, tpos - flank)`` and ``end = min(chromlen, tpos + trlen + flank)``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .models import ContigRecord, TrimResult, VariantRecord
from .reference import ChromosomeCache, ReferenceGenome
from .trim import trim_alleles, trimmed_record
from .utils import text_output
from .validation import validate_contig_options
from .variants import iter_variant_records, open_vcf_in

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContigOptions:
    flank: int = 0
    trim: bool = False
    include_reference: bool = True
    include_alternates: bool = True
    max_allele_length: Optional[int] = None

    def validate(self) -> None:
        validate_contig_options(
            flank=self.flank,
            include_reference=self.include_reference,
            include_alternates=self.include_alternates,
            max_allele_length=self.max_allele_length,
        )


@dataclass
class ExtractionStats:
    records_total: int = 0
    records_emitted: int = 0
    records_skipped_ref_too_long: int = 0
    records_skipped_no_alt: int = 0
    alleles_skipped_too_long: int = 0
    contigs_written: int = 0
    bases_written: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _select_alleles(
    record: VariantRecord,
    alleles: List[str],
    options: ContigOptions,
    stats: ExtractionStats,
) -> Optional[List[int]]:
    """Return allele indices to emit, or None if the record is skipped."""
    limit = options.max_allele_length
    if limit is not None and len(alleles[0]) > limit:
        stats.records_skipped_ref_too_long += 1
        logger.debug("Skipping %s:%d %s: ref allele longer than %d", record.chrom, record.pos + 1, record.id, limit)
        return None

    alt_ids: List[int] = []
    for aid in range(1, len(alleles)):
        if limit is not None and len(alleles[aid]) > limit:
            stats.alleles_skipped_too_long += 1
            continue
        alt_ids.append(aid)

    if limit is not None and not alt_ids:
        stats.records_skipped_no_alt += 1
        logger.debug("Skipping %s:%d %s: no alt allele within %d bp", record.chrom, record.pos + 1, record.id, limit)
        return None

    selected: List[int] = []
    if options.include_reference:
        selected.append(0)
    if options.include_alternates:
        selected.extend(alt_ids)
    return selected


def extract_record(
    record: VariantRecord,
    chrom_seq: str,
    options: ContigOptions,
    stats: ExtractionStats,
) -> List[ContigRecord]:
    """Build the windows for one record. ``chrom_seq`` is its whole chromosome."""
    stats.records_total += 1

    trim = trim_alleles(record) if options.trim else TrimResult(0, 0)
    event = trimmed_record(record, trim) if options.trim else record
    alleles = list(event.alleles)
    selected = _select_alleles(record, alleles, options, stats)
    if selected is None:
        return []

    chromlen = len(chrom_seq)
    start = max(0, event.pos - options.flank)
    end = min(chromlen, event.end + options.flank)
    left = chrom_seq[start : event.pos]
    right = chrom_seq[event.end : end]

    out: List[ContigRecord] = []
    for aid in selected:
        out.append(
            ContigRecord(
                chrom=record.chrom,
                pos1=record.pos + 1,
                record_id=record.id,
                ref=record.ref,
                allele=record.alleles[aid],
                allele_index=aid,
                offset=event.pos - start,
                ltrim=trim.ltrim,
                rtrim=trim.rtrim,
                seq=left + alleles[aid] + right,
            )
        )
    if out:
        stats.records_emitted += 1
    return out


def extract_contigs(
    records: Iterable[VariantRecord],
    chromosomes: ChromosomeCache,
    options: ContigOptions,
    stats: ExtractionStats,
) -> Iterator[ContigRecord]:
    """Yield windows for each record in stream order, updating ``stats``."""
    options.validate()
    for record in records:
        chrom_seq = chromosomes.for_record(record)
        yield from extract_record(record, chrom_seq, options, stats)


def write_contigs(
    *,
    vcf_path: str | Path,
    ref_fa: str | Path,
    out_path: str | Path,
    options: ContigOptions,
    progress: bool = False,
) -> ExtractionStats:
    """Write FASTA windows for every record of a VCF; ``-`` writes to stdout."""
    options.validate()
    stats = ExtractionStats()

    with ReferenceGenome(ref_fa) as reference, open_vcf_in(vcf_path) as vin:
        chromosomes = ChromosomeCache(reference)
        records = iter_variant_records(vin, progress=progress, desc="Extracting contigs")

        with text_output(out_path) as fh:
            for contig in extract_contigs(records, chromosomes, options, stats):
                fh.write(contig.to_fasta())
                stats.contigs_written += 1
                stats.bases_written += len(contig.seq)

    logger.info(
        "Wrote %d contigs from %d records (skipped: %d ref too long, %d no alt, %d alleles)",
        stats.contigs_written,
        stats.records_total,
        stats.records_skipped_ref_too_long,
        stats.records_skipped_no_alt,
        stats.alleles_skipped_too_long,
    )
    return stats


def run_contigs(
    *,
    vcf_path: str | Path,
    ref_fa: str | Path,
    out_path: str | Path,
    options: ContigOptions,
    progress: bool = False,
) -> Dict[str, object]:
    t0 = time.time()
    stats = write_contigs(
        vcf_path=vcf_path,
        ref_fa=ref_fa,
        out_path=out_path,
        options=options,
        progress=progress,
    )
    return {
        "vcf_path": str(vcf_path),
        "ref_fa": str(ref_fa),
        "out_path": str(out_path),
        "options": asdict(options),
        "counts": stats.as_dict(),
        "runtime_seconds": float(time.time() - t0),
    }
