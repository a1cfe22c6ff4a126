"""Fatal error conditions.

Every error here terminates the run: the filters are single-pass over a sorted
stream, so a bad record or a broken reference index invalidates all later
coordinate arithmetic. Skipped records (e.g. alleles above a length threshold)
are counted, not raised.
"""

from __future__ import annotations

from typing import Optional


class VcfHackError(RuntimeError):
    """Base class for all fatal vcfhack errors."""


class InvalidConfigurationError(VcfHackError, ValueError):
    """Raised for nonsensical option values, before any input is read."""


class MalformedRecordError(VcfHackError, ValueError):
    """Raised when a record cannot be placed on its chromosome."""

    def __init__(
        self,
        message: str,
        *,
        chrom: Optional[str] = None,
        pos1: Optional[int] = None,
        record_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.chrom = chrom
        self.pos1 = pos1
        self.record_id = record_id


class MissingReferenceError(VcfHackError, LookupError):
    """Raised when a chromosome, a region or the index is absent from the reference."""

    def __init__(self, message: str, *, chrom: Optional[str] = None) -> None:
        super().__init__(message)
        self.chrom = chrom


class RegionSizeMismatchError(VcfHackError):
    """Raised when the reference returns fewer/more bases than requested."""

    def __init__(self, message: str, *, expected: int, observed: int) -> None:
        super().__init__(message)
        self.expected = int(expected)
        self.observed = int(observed)
