from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

import pysam

from .utils import ensure_outdir, write_json

# chr1 layout (0-based):
#   0-39    ACGT repeat
#   40-47   GAAAAAAC  (A6 homopolymer at 41-46)
#   48-67   ACGT repeat
#   68-77   TCACACACAG (CA repeat at 69-76)
#   78-199  ACGT repeat
_CHR1 = ("ACGT" * 10 + "GAAAAAAC" + "ACGT" * 5 + "TCACACACAG" + "ACGT" * 31)[:200]
_CHR2 = "TTGCA" * 20


def _write_fasta(path: Path, contigs: List[Tuple[str, str]]) -> None:
    lines: List[str] = []
    for name, seq in contigs:
        lines.append(f">{name}")
        for i in range(0, len(seq), 60):
            lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _mutate_base(base: str) -> str:
    for alt in ["A", "C", "G", "T"]:
        if alt != base:
            return alt
    return "A"


def toy_records() -> List[Tuple[str, int, Tuple[str, ...], str]]:
    """(contig, pos0, alleles, id) for the toy VCF, sorted by contig then position."""
    recs: List[Tuple[str, int, Tuple[str, ...], str]] = []

    recs.append(("chr1", 10, (_CHR1[10], _mutate_base(_CHR1[10])), "snv1"))
    # delete one A of the A6 run
    recs.append(("chr1", 40, (_CHR1[40:42], _CHR1[40]), "del_hp"))
    # insert CA into the CA repeat
    recs.append(("chr1", 68, (_CHR1[68], _CHR1[68] + "CA"), "ins_rep"))
    # two SNVs 2 bp apart
    recs.append(("chr1", 100, (_CHR1[100], _mutate_base(_CHR1[100])), "close_a"))
    recs.append(("chr1", 102, (_CHR1[102], _mutate_base(_CHR1[102])), "close_b"))
    # multi-allelic: 2 bp deletion and an SNV on the last ref base
    ref = _CHR1[150:153]
    recs.append(("chr1", 150, (ref, ref[0], ref[:2] + _mutate_base(ref[2])), "multi"))
    recs.append(("chr2", 5, (_CHR2[5], _mutate_base(_CHR2[5])), "snv2"))
    return recs


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny reference and VCF suitable for quick demos/tests.

    The outputs include:
    - toy_ref.fa (+ .fai)
    - variants.vcf.gz (+ .tbi)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    contigs = [("chr1", _CHR1), ("chr2", _CHR2)]
    ref_fa = outdir_p / "toy_ref.fa"
    _write_fasta(ref_fa, contigs)
    pysam.faidx(str(ref_fa))

    vcf_path = outdir_p / "variants.vcf"
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    for name, seq in contigs:
        header.contigs.add(name, length=len(seq))

    with pysam.VariantFile(str(vcf_path), "w", header=header) as vcf:
        for contig, pos0, alleles, rid in toy_records():
            rec = vcf.new_record(
                contig=contig,
                start=pos0,
                stop=pos0 + len(alleles[0]),
                alleles=alleles,
                id=rid,
                qual=60,
                filter="PASS",
            )
            vcf.write(rec)

    vcf_gz = outdir_p / "variants.vcf.gz"
    pysam.tabix_compress(str(vcf_path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)

    summary = {
        "ref_fa": str(ref_fa),
        "vcf": str(vcf_gz),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
