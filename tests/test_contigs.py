import gzip
from pathlib import Path

import pytest

from vcfhack.contigs import ContigOptions, ExtractionStats, extract_contigs, extract_record, write_contigs
from vcfhack.errors import InvalidConfigurationError, MalformedRecordError
from vcfhack.models import VariantRecord
from vcfhack.reference import ChromosomeCache, ReferenceGenome
from vcfhack.toy_data import make_toy_data
from vcfhack.variants import iter_variant_records, open_vcf_in

CHROM = "ACGTACGTAC" * 100


def make_record(pos: int, *alts: str, ref: str = "", rec_id: str = "rs1") -> VariantRecord:
    ref = ref or CHROM[pos]
    return VariantRecord(rid=0, chrom="chr1", pos=pos, rlen=len(ref), alleles=(ref,) + alts, id=rec_id)


def extract(record: VariantRecord, **kwargs):
    stats = ExtractionStats()
    return extract_record(record, CHROM, ContigOptions(**kwargs), stats), stats


def test_trimmed_insertion_window():
    rec = make_record(49, CHROM[49] + "TT")
    out, stats = extract(rec, flank=5, trim=True)

    assert [c.allele_index for c in out] == [0, 1]
    ref_contig, alt_contig = out
    assert ref_contig.seq == CHROM[45:55]
    assert alt_contig.seq == CHROM[45:50] + "TT" + CHROM[50:55]
    assert alt_contig.offset == 5
    assert alt_contig.name == "rs1|chr1:50|C>CTT|allele=1|offset=5|ltrim=1|rtrim=0"
    assert alt_contig.to_fasta() == f">{alt_contig.name}\n{alt_contig.seq}\n"
    assert stats.records_emitted == 1


def test_untrimmed_window_keeps_anchor_base():
    rec = make_record(49, CHROM[49] + "TT")
    _, alt_contig = extract(rec, flank=5)[0]
    assert alt_contig.seq == CHROM[44:49] + "CTT" + CHROM[50:55]
    assert alt_contig.offset == 5
    assert alt_contig.ltrim == 0


def test_window_is_clipped_at_chromosome_start():
    out, _ = extract(make_record(2, "T"), flank=10)
    assert out[1].seq == CHROM[0:2] + "T" + CHROM[3:13]
    assert out[1].offset == 2


def test_window_is_clipped_at_chromosome_end():
    out, _ = extract(make_record(998, "T"), flank=10)
    assert out[1].seq == CHROM[988:998] + "T" + CHROM[999:]
    assert out[1].offset == 10


def test_trimmed_deletion_drops_deleted_bases():
    rec = make_record(10, CHROM[10], ref=CHROM[10:14])
    ref_contig, alt_contig = extract(rec, flank=3, trim=True)[0]
    assert ref_contig.seq == CHROM[8:17]
    assert alt_contig.seq == CHROM[8:11] + CHROM[14:17]


def test_include_flags():
    rec = make_record(100, "T", "G")
    out, _ = extract(rec, flank=2, include_reference=False)
    assert [c.allele_index for c in out] == [1, 2]
    out, _ = extract(rec, flank=2, include_alternates=False)
    assert [c.allele_index for c in out] == [0]


def test_max_allele_length_skips_long_alternate():
    rec = make_record(10, CHROM[10], CHROM[10:13] + "TTTT", ref=CHROM[10:13])
    out, stats = extract(rec, max_allele_length=3)
    assert [c.allele_index for c in out] == [0, 1]
    assert stats.alleles_skipped_too_long == 1


def test_max_allele_length_skips_long_reference():
    rec = make_record(10, CHROM[10], ref=CHROM[10:15])
    out, stats = extract(rec, max_allele_length=3)
    assert out == []
    assert stats.records_skipped_ref_too_long == 1
    assert stats.records_emitted == 0


def test_max_allele_length_skips_record_without_short_alternate():
    rec = make_record(10, CHROM[10] + "TTTT")
    out, stats = extract(rec, max_allele_length=2)
    assert out == []
    assert stats.records_skipped_no_alt == 1


def test_trim_without_alternate_is_fatal():
    with pytest.raises(MalformedRecordError):
        extract(make_record(10), trim=True)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"flank": -1},
        {"include_reference": False, "include_alternates": False},
        {"max_allele_length": -5},
    ],
)
def test_invalid_options(kwargs):
    with pytest.raises(InvalidConfigurationError):
        ContigOptions(**kwargs).validate()


def test_extract_contigs_loads_each_chromosome_once(tmp_path: Path):
    toy = make_toy_data(outdir=tmp_path / "toy")
    stats = ExtractionStats()
    with ReferenceGenome(toy["ref_fa"]) as reference, open_vcf_in(toy["vcf"]) as vin:
        cache = ChromosomeCache(reference)
        contigs = list(extract_contigs(iter_variant_records(vin), cache, ContigOptions(flank=10), stats))
    assert cache.loads == 2
    assert len(contigs) == 15
    assert stats.records_total == 7


def test_write_contigs_toy(tmp_path: Path):
    toy = make_toy_data(outdir=tmp_path / "toy")
    out = tmp_path / "contigs.fa"
    stats = write_contigs(
        vcf_path=toy["vcf"],
        ref_fa=toy["ref_fa"],
        out_path=out,
        options=ContigOptions(flank=10, trim=True),
    )
    lines = out.read_text().splitlines()
    headers = [line for line in lines if line.startswith(">")]
    assert len(headers) == 15
    assert stats.contigs_written == 15
    assert headers[0].startswith(">snv1|chr1:11|")
    assert stats.bases_written == sum(len(line) for line in lines if not line.startswith(">"))


def test_write_contigs_gzip(tmp_path: Path):
    toy = make_toy_data(outdir=tmp_path / "toy")
    out = tmp_path / "contigs.fa.gz"
    write_contigs(
        vcf_path=toy["vcf"],
        ref_fa=toy["ref_fa"],
        out_path=out,
        options=ContigOptions(flank=5, include_reference=False),
    )
    with gzip.open(out, "rt") as fh:
        headers = [line for line in fh if line.startswith(">")]
    assert len(headers) == 8
    assert all("|allele=0|" not in h for h in headers)
