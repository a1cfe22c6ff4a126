from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .contigs import ContigOptions, run_contigs
from .errors import VcfHackError
from .homopolymer import DEFAULT_WINDOW, annotate_vcf
from .plotting import plot_counts, plot_gap_hist, plot_hrun_hist
from .proximity import filter_vcf
from .report import render_report
from .toy_data import make_toy_data
from .utils import ensure_outdir, write_json
from .validation import (
    HP_POLICIES,
    check_fasta_index,
    check_vcf_input,
    validate_distance,
    validate_hp_options,
)


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _resolve_outdir(outdir: Optional[str]) -> Optional[Path]:
    if outdir is None:
        return None
    return Path(outdir).expanduser().resolve()


def _log_path(outdir: Optional[Path], name: str) -> Optional[Path]:
    if outdir is None:
        return None
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, VcfHackError):
        msg = f"Error: {err.__class__.__name__}: {err}"
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--vcf", required=True, type=_path_exists, help="Input VCF (.vcf/.vcf.gz/.bcf).")
    p.add_argument(
        "--outdir",
        default=None,
        help="Optional directory for summary.json, report.html, plots and logs.",
    )
    p.add_argument("--no-progress", action="store_true", help="Do not show a progress bar.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vcfhack",
        description=(
            "vcfhack: streaming VCF filters against a reference FASTA. "
            "Drop clustered variants, annotate homopolymer runs, extract flanking contigs."
        ),
    )
    p.add_argument("--version", action="version", version=f"vcfhack {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for each command.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference and VCF for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # dist
    # -----------------
    d = sub.add_parser(
        "dist",
        help="Filter out records within --distance bp of each other (input must be sorted).",
    )
    d.add_argument("--distance", required=True, type=int, help="Minimum gap in bp between kept records.")
    d.add_argument(
        "--trim",
        action="store_true",
        help="Trim bases shared by all alleles before measuring record spans.",
    )
    d.add_argument("--out", default="-", help="Output VCF ('-' for stdout, .vcf.gz is bgzipped).")
    _add_common_args(d)

    # -----------------
    # hp
    # -----------------
    h = sub.add_parser(
        "hp",
        help="Add homopolymer run annotations (INFO/HRun) to biallelic indels.",
    )
    h.add_argument("--ref", required=True, type=_path_exists, help="Reference FASTA (indexed).")
    h.add_argument(
        "--window",
        type=int,
        default=DEFAULT_WINDOW,
        help="Bases of reference context scanned on each side of the indel.",
    )
    h.add_argument(
        "--policy",
        choices=list(HP_POLICIES),
        default="cyclic",
        help="cyclic: repeat unit of the indel; strict: single-base homopolymers only.",
    )
    h.add_argument(
        "--min-hrun",
        type=int,
        default=0,
        help="Only annotate runs of at least this length (2 annotates runs > 1).",
    )
    h.add_argument("--out", default="-", help="Output VCF ('-' for stdout, .vcf.gz is bgzipped).")
    _add_common_args(h)

    # -----------------
    # contigs
    # -----------------
    c = sub.add_parser(
        "contigs",
        help="Print --flank bp either side of each allele as FASTA.",
    )
    c.add_argument("--ref", required=True, type=_path_exists, help="Reference FASTA (indexed).")
    c.add_argument("--flank", required=True, type=int, help="Bases of context on each side.")
    c.add_argument("--trim", action="store_true", help="Trim bases shared by all alleles first.")
    c.add_argument("--no-ref", action="store_true", help="Do not emit the reference allele.")
    c.add_argument("--no-alts", action="store_true", help="Do not emit alternate alleles.")
    c.add_argument(
        "--max-allele-length",
        type=int,
        default=None,
        help="Skip alleles (and records whose ref is) longer than this after trimming.",
    )
    c.add_argument("--out", default="-", help="Output FASTA ('-' for stdout, .gz is gzipped).")
    _add_common_args(c)

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "vcfhack quickstart (copy/paste):",
        "",
        "1) Drop variants within 10 bp of each other (sorted input):",
        "   vcfhack dist --distance 10 --vcf in.vcf.gz --out spaced.vcf.gz",
        "",
        "2) Annotate indels with homopolymer run length (INFO/HRun):",
        "   vcfhack hp --ref ref.fa --vcf in.vcf.gz --out hrun.vcf.gz",
        "",
        "3) Extract 100 bp either side of each trimmed allele as FASTA:",
        "   vcfhack contigs --ref ref.fa --vcf in.vcf.gz --flank 100 --trim --out contigs.fa",
        "",
        "Reference FASTA must be indexed: samtools faidx ref.fa",
        "Tip: add --outdir results/ for summary.json, plots and report.html.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _write_run_outputs(
    *,
    outdir: Path,
    command: str,
    run: Dict[str, Any],
    inputs: Dict[str, Any],
    params: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    write_json(outdir / "summary.json", run)
    return render_report(
        outdir=outdir,
        version=__version__,
        command=command,
        inputs=inputs,
        params=params,
        counts=run["counts"],
        plots=plots,
        outputs=[str(run["out_path"])],
        runtime_seconds=float(run.get("runtime_seconds", 0.0)),
    )


def cmd_dist(args: argparse.Namespace) -> int:
    outdir = _resolve_outdir(args.outdir)
    log_path = _log_path(outdir, "dist.log")
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("vcfhack")
    logger.info("vcfhack %s", __version__)

    try:
        validate_distance(args.distance)
        check_vcf_input(args.vcf)

        run = filter_vcf(
            vcf_path=args.vcf,
            out_path=args.out,
            distance=int(args.distance),
            trim=bool(args.trim),
            progress=not bool(args.no_progress),
        )

        if outdir is not None:
            ensure_outdir(outdir)
            counts = run["counts"]
            plots_dir = outdir / "plots"
            plot_counts(
                counts={"records_kept": counts["records_kept"], "records_discarded": counts["records_discarded"]},
                out_png=plots_dir / "records.png",
                title="Proximity filter",
            )
            plot_gap_hist(
                bin_edges=counts["gap_hist"]["bin_edges"],
                counts=counts["gap_hist"]["counts"],
                out_png=plots_dir / "gap_hist.png",
            )
            report_path = _write_run_outputs(
                outdir=outdir,
                command="dist",
                run=run,
                inputs={"VCF": args.vcf},
                params={"distance": run["distance"], "trim": run["trim"]},
                plots={
                    "Kept vs discarded": "plots/records.png",
                    "Gaps": "plots/gap_hist.png",
                },
            )
            logger.info("Report written: %s", report_path)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_hp(args: argparse.Namespace) -> int:
    outdir = _resolve_outdir(args.outdir)
    log_path = _log_path(outdir, "hp.log")
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("vcfhack")
    logger.info("vcfhack %s", __version__)

    try:
        validate_hp_options(window=args.window, policy=args.policy, min_hrun=args.min_hrun)
        check_fasta_index(args.ref)
        check_vcf_input(args.vcf)

        run = annotate_vcf(
            vcf_path=args.vcf,
            ref_fa=args.ref,
            out_path=args.out,
            window=int(args.window),
            policy=str(args.policy),
            min_hrun=int(args.min_hrun),
            progress=not bool(args.no_progress),
        )

        if outdir is not None:
            ensure_outdir(outdir)
            counts = run["counts"]
            plots_dir = outdir / "plots"
            plot_counts(
                counts={
                    "annotated": counts["records_annotated"],
                    "not_biallelic": counts["skipped_not_biallelic"],
                    "substitution": counts["skipped_substitution"],
                    "not_homopolymer": counts["skipped_not_homopolymer"],
                    "below_min": counts["skipped_below_min"],
                },
                out_png=plots_dir / "records.png",
                title="HRun annotation",
            )
            plot_hrun_hist(
                hrun_hist={int(k): int(v) for k, v in counts["hrun_hist"].items()},
                out_png=plots_dir / "hrun_hist.png",
            )
            report_path = _write_run_outputs(
                outdir=outdir,
                command="hp",
                run=run,
                inputs={"VCF": args.vcf, "Reference": args.ref},
                params={"window": run["window"], "policy": run["policy"], "min_hrun": run["min_hrun"]},
                plots={
                    "Records": "plots/records.png",
                    "HRun distribution": "plots/hrun_hist.png",
                },
            )
            logger.info("Report written: %s", report_path)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_contigs(args: argparse.Namespace) -> int:
    outdir = _resolve_outdir(args.outdir)
    log_path = _log_path(outdir, "contigs.log")
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("vcfhack")
    logger.info("vcfhack %s", __version__)

    try:
        options = ContigOptions(
            flank=int(args.flank),
            trim=bool(args.trim),
            include_reference=not bool(args.no_ref),
            include_alternates=not bool(args.no_alts),
            max_allele_length=args.max_allele_length,
        )
        options.validate()
        check_fasta_index(args.ref)
        check_vcf_input(args.vcf)

        run = run_contigs(
            vcf_path=args.vcf,
            ref_fa=args.ref,
            out_path=args.out,
            options=options,
            progress=not bool(args.no_progress),
        )

        if outdir is not None:
            ensure_outdir(outdir)
            counts = run["counts"]
            plot_counts(
                counts={
                    "emitted": counts["records_emitted"],
                    "ref_too_long": counts["records_skipped_ref_too_long"],
                    "no_alt": counts["records_skipped_no_alt"],
                },
                out_png=outdir / "plots" / "records.png",
                title="Contig extraction",
            )
            report_path = _write_run_outputs(
                outdir=outdir,
                command="contigs",
                run=run,
                inputs={"VCF": args.vcf, "Reference": args.ref},
                params=dict(run["options"]),
                plots={"Records": "plots/records.png"},
            )
            logger.info("Report written: %s", report_path)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "dist":
        return cmd_dist(args)
    if args.cmd == "hp":
        return cmd_hp(args)
    if args.cmd == "contigs":
        return cmd_contigs(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
