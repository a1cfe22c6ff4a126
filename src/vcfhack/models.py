from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class VariantRecord:
    """A parsed VCF record as consumed by the filters.

    Coordinates are 0-based in internal representation.

    Attributes
    ----------
    rid:
        Contig identifier, stable within one input stream (header contig index).
    chrom:
        Contig name as present in the VCF.
    pos:
        0-based start of the reference allele.
    rlen:
        Reference span in bases. Equals ``len(alleles[0])`` for ordinary records.
    alleles:
        Allele strings; index 0 is the reference, indices >= 1 are alternates.
    id:
        VCF ID, or ``"."`` when missing.
    source:
        The underlying parsed record (e.g. ``pysam.VariantRecord``), carried so
        that kept records can be written back unchanged.
    """

    rid: int
    chrom: str
    pos: int
    rlen: int
    alleles: Tuple[str, ...]
    id: str = "."
    source: Optional[Any] = field(default=None, compare=False, repr=False)

    @property
    def ref(self) -> str:
        return self.alleles[0]

    @property
    def alts(self) -> Tuple[str, ...]:
        return self.alleles[1:]

    @property
    def n_allele(self) -> int:
        return len(self.alleles)

    @property
    def end(self) -> int:
        return self.pos + self.rlen


@dataclass(frozen=True)
class TrimResult:
    """Bases to drop from the left/right of every allele of a record."""

    ltrim: int
    rtrim: int


@dataclass(frozen=True)
class ReferenceWindow:
    """A contiguous slice of a chromosome. ``start`` is the absolute 0-based offset."""

    chrom: str
    start: int
    seq: str

    @property
    def length(self) -> int:
        return len(self.seq)

    @property
    def end(self) -> int:
        # inclusive
        return self.start + len(self.seq) - 1


@dataclass(frozen=True)
class ContigRecord:
    """One extracted sequence window around one allele of a record."""

    chrom: str
    pos1: int
    record_id: str
    ref: str
    allele: str
    allele_index: int
    offset: int
    ltrim: int
    rtrim: int
    seq: str

    @property
    def name(self) -> str:
        return (
            f"{self.record_id}|{self.chrom}:{self.pos1}|{self.ref}>{self.allele}"
            f"|allele={self.allele_index}|offset={self.offset}"
            f"|ltrim={self.ltrim}|rtrim={self.rtrim}"
        )

    def to_fasta(self) -> str:
        return f">{self.name}\n{self.seq}\n"
