from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

import pysam
from tqdm import tqdm

from .models import VariantRecord

logger = logging.getLogger(__name__)


def to_variant_record(rec: pysam.VariantRecord) -> VariantRecord:
    """Wrap a pysam record; position becomes 0-based, the pysam record is kept as ``source``."""
    alleles = tuple(rec.alleles) if rec.alleles is not None else (rec.ref or "",)
    return VariantRecord(
        rid=int(rec.rid),
        chrom=str(rec.chrom),
        pos=int(rec.start),
        rlen=int(rec.rlen),
        alleles=alleles,
        id=rec.id if rec.id is not None else ".",
        source=rec,
    )


def open_vcf_in(path: str | Path) -> pysam.VariantFile:
    return pysam.VariantFile(str(path))


def open_vcf_out(path: str | Path, header: pysam.VariantHeader) -> pysam.VariantFile:
    """Open a VCF for writing; ``-`` is stdout, ``.gz`` is bgzipped."""
    p = str(path)
    mode = "wz" if p.endswith(".gz") else "w"
    return pysam.VariantFile(p, mode, header=header)


def iter_variant_records(
    vcf: pysam.VariantFile,
    *,
    progress: bool = False,
    desc: str = "Reading records",
) -> Iterator[VariantRecord]:
    """Yield records in file order. Input is read sequentially, no index required."""
    it: Iterable[pysam.VariantRecord] = vcf
    if progress:
        it = tqdm(it, unit="rec", desc=desc)
    for rec in it:
        yield to_variant_record(rec)


def write_records(vcf_out: pysam.VariantFile, records: Iterable[VariantRecord]) -> int:
    """Write the underlying pysam records in iteration order; return the count."""
    n = 0
    for rec in records:
        if rec.source is None:
            raise ValueError(f"Record {rec.chrom}:{rec.pos + 1} has no source VCF record to write")
        vcf_out.write(rec.source)
        n += 1
    return n


def index_if_bgzipped(path: str | Path) -> Optional[str]:
    p = str(path)
    if p.endswith(".vcf.gz"):
        pysam.tabix_index(p, preset="vcf", force=True)
        return p + ".tbi"
    return None
