"""vcfhack: small streaming filters over VCF records and a reference FASTA.

Most users should use the CLI:

    vcfhack dist --vcf in.vcf.gz --distance 10
    vcfhack hp --ref ref.fa --vcf in.vcf.gz
    vcfhack contigs --ref ref.fa --vcf in.vcf.gz --flank 50

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
