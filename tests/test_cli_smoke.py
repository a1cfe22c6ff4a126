import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "vcfhack", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "vcfhack" in cp.stdout.lower()
    for cmd in ("dist", "hp", "contigs"):
        assert cmd in cp.stdout
