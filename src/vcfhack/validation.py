from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from .errors import InvalidConfigurationError, MissingReferenceError

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"

HP_POLICIES = ("cyclic", "strict")


def check_fasta_index(fasta_path: str | Path) -> None:
    """Ensure a FASTA has a .fai index; raise MissingReferenceError with fix instructions."""
    fa = Path(fasta_path)
    fai = fa.with_suffix(fa.suffix + ".fai")
    if fai.exists():
        return
    raise MissingReferenceError(f"Reference is not indexed. Build {fai.name} with: samtools faidx {fa}")


def check_vcf_input(vcf_path: str | Path) -> None:
    vcf = Path(vcf_path)
    if vcf.suffix == ".vcf":
        logger.info(
            "VCF is uncompressed (.vcf). This is supported; records are streamed in file order."
        )


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def _require_non_negative(value: int, flag: str) -> None:
    if int(value) < 0:
        raise InvalidConfigurationError(f"{flag} must be >= 0 (got {value})")


def validate_distance(distance: int) -> None:
    _require_non_negative(distance, "--distance")


def validate_hp_options(*, window: int, policy: str, min_hrun: int) -> None:
    _require_non_negative(window, "--window")
    _require_non_negative(min_hrun, "--min-hrun")
    if policy not in HP_POLICIES:
        raise InvalidConfigurationError(
            f"--policy must be one of {', '.join(HP_POLICIES)} (got {policy!r})"
        )


def validate_contig_options(
    *,
    flank: int,
    include_reference: bool,
    include_alternates: bool,
    max_allele_length: Optional[int],
) -> None:
    _require_non_negative(flank, "--flank")
    if not include_reference and not include_alternates:
        raise InvalidConfigurationError(
            "Nothing to extract: --no-ref and --no-alts cannot be combined."
        )
    if max_allele_length is not None:
        _require_non_negative(max_allele_length, "--max-allele-length")
