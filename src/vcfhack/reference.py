"""Reference sequence access.

``ReferenceGenome`` is a thin wrapper over ``pysam.FastaFile`` that turns
pysam's lookup failures into :class:`MissingReferenceError` and checks that a
fetched region has the requested length.

``ChromosomeCache`` keeps the *current* chromosome in memory while a sorted
record stream walks along it, and swaps it out exactly when the contig
identifier changes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import pysam

from .errors import MalformedRecordError, MissingReferenceError, RegionSizeMismatchError
from .models import ReferenceWindow, VariantRecord
from .validation import detect_contig_style

logger = logging.getLogger(__name__)


class ReferenceGenome:
    """Random access to an indexed FASTA."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self._fasta = pysam.FastaFile(self.path)

    def __enter__(self) -> "ReferenceGenome":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._fasta.close()

    @property
    def references(self) -> List[str]:
        return list(self._fasta.references)

    def _missing(self, name: str) -> MissingReferenceError:
        msg = f"Cannot find chrom '{name}' in reference {self.path}"
        ref_style = detect_contig_style(self.references)
        name_style = detect_contig_style([name])
        if ref_style != "unknown" and name_style != ref_style:
            msg += (
                f" (contig naming mismatch: VCF uses {name_style} style, "
                f"reference uses {ref_style} style, e.g. chr1 vs 1)"
            )
        return MissingReferenceError(msg, chrom=name)

    def has(self, name: str) -> bool:
        return name in self._fasta.references

    def length(self, name: str) -> int:
        if not self.has(name):
            raise self._missing(name)
        return int(self._fasta.get_reference_length(name))

    def fetch_chromosome(self, name: str) -> str:
        """Return the full sequence of ``name``."""
        if not self.has(name):
            raise self._missing(name)
        seq = self._fasta.fetch(reference=name)
        logger.debug("Loaded %s (%d bp)", name, len(seq))
        return seq

    def fetch_region(self, name: str, start: int, end: int) -> ReferenceWindow:
        """Return bases ``start..end`` of ``name`` (0-based, both inclusive)."""
        if not self.has(name):
            raise self._missing(name)
        seq = self._fasta.fetch(reference=name, start=int(start), end=int(end) + 1)
        expected = int(end) - int(start) + 1
        if len(seq) != expected:
            raise RegionSizeMismatchError(
                f"Region not as expected {name}:{start}-{end}: got {len(seq)} bp vs {expected} bp",
                expected=expected,
                observed=len(seq),
            )
        return ReferenceWindow(chrom=name, start=int(start), seq=seq)


class ChromosomeCache:
    """Holds the sequence of the chromosome currently being streamed over."""

    def __init__(self, reference: ReferenceGenome) -> None:
        self.reference = reference
        self._key: Optional[Union[int, str]] = None
        self._name: Optional[str] = None
        self._seq: str = ""
        self.loads = 0

    @property
    def name(self) -> Optional[str]:
        return self._name

    def get(self, name: str, rid: Optional[int] = None) -> str:
        """Return the sequence of ``name``; reloads only when the identifier changes."""
        key: Union[int, str] = rid if rid is not None else name
        if key != self._key:
            # drop the old chromosome before loading the next one
            self._seq = ""
            self._seq = self.reference.fetch_chromosome(name)
            self._key = key
            self._name = name
            self.loads += 1
        return self._seq

    def for_record(self, record: VariantRecord) -> str:
        """Return the record's chromosome, checking the reference allele fits on it."""
        seq = self.get(record.chrom, record.rid)
        if record.pos + record.rlen > len(seq):
            raise MalformedRecordError(
                f"Ref allele goes out of bounds: {record.chrom} {record.pos + 1} {record.id} "
                f"{record.ref} [chromlen: {len(seq)}]",
                chrom=record.chrom,
                pos1=record.pos + 1,
                record_id=record.id,
            )
        return seq
