import subprocess, sys

from confrescue import __version__


def test_cli_help():
    out = subprocess.check_output([sys.executable, "-m", "confrescue", "--help"], text=True)
    assert "usage:" in out
    for flag in ("--nconfs", "--ff", "--chrg", "--theory", "--rescue", "--norescue"):
        assert flag in out


def test_cli_version():
    out = subprocess.check_output([sys.executable, "-m", "confrescue", "--version"], text=True)
    assert __version__ in out


def test_cli_requires_input():
    cp = subprocess.run([sys.executable, "-m", "confrescue"], text=True, capture_output=True)
    assert cp.returncode == 2
