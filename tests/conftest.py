import os, stat, pytest
from pathlib import Path


def _write_exe(path: Path, text: str) -> None:
    path.write_text(text)
    os.chmod(path, os.stat(path).st_mode | stat.S_IEXEC)


@pytest.fixture(scope="session")
def shim_bin(tmp_path_factory):
    """Directory with shim executables (obabel, xtb, crest) for tests.

    Behaviour is steered through environment variables so one set of shims
    covers every scenario:

    SHIM_CALLS        file every invocation is appended to ("<tool> <args>")
    SHIM_ZERO_FOR     space separated structure file names for which the
                      conformer search reports zero conformers
    SHIM_CONFS        number of conformers written on success (default 3)
    SHIM_CHARGE       charge printed in the gzmat charge line (default 0)
    SHIM_NO_CHARGE    if set, no charge line is printed
    SHIM_CONF_EXIT    exit status of the conformer search (default 0)
    SHIM_XTB_FAIL     if set, xtb writes no convergence marker
    SHIM_CREST_EXIT   exit status of crest (default 0)
    """
    d = tmp_path_factory.mktemp("shims")

    obabel = r"""#!/usr/bin/env bash
set -euo pipefail
[[ -n "${SHIM_CALLS:-}" ]] && echo "obabel $*" >> "$SHIM_CALLS"
in="$1"; shift
out=""; fmt=""; conformer=0; nconf=1
while [[ $# -gt 0 ]]; do
  case "$1" in
    -O) out="$2"; shift 2;;
    -o*) fmt="${1#-o}"; shift;;
    --conformer) conformer=1; shift;;
    --nconf) nconf="$2"; shift 2;;
    *) shift;;
  esac
done
if [[ ! -f "$in" ]]; then
  echo "==============================" >&2
  echo "*** Open Babel Error  in OpenAndReadFile" >&2
  echo "0 molecules converted" >&2
  exit 0
fi
if [[ -n "$fmt" ]]; then
  echo "%cpu=1"
  echo "# Put Keywords Here, check Charge and Multiplicity."
  echo ""
  echo " $in"
  echo ""
  if [[ -z "${SHIM_NO_CHARGE:-}" ]]; then
    echo "${SHIM_CHARGE:-0}  1"
  fi
  echo "C"
  echo "O  1  r2"
  echo "Variables:"
  echo "r2= 1.4300"
  if [[ -z "${SHIM_NO_CHARGE:-}" ]]; then
    echo "7  2"
  fi
  exit 0
fi
if [[ "$conformer" == "1" ]]; then
  base="$(basename "$in")"
  for z in ${SHIM_ZERO_FOR:-}; do
    if [[ "$z" == "$base" ]]; then
      echo "Initial conformer count: 0"
      echo "1 molecule converted"
      exit "${SHIM_CONF_EXIT:-0}"
    fi
  done
  n="${SHIM_CONFS:-3}"
  echo "Initial conformer count: $n"
  : > "$out"
  for ((i=1; i<=n; i++)); do
    printf '2\nconformer %d\nC 0.0 0.0 0.%d\nO 1.4 0.0 0.0\n' "$i" "$i" >> "$out"
  done
  echo "$n molecules converted"
  exit "${SHIM_CONF_EXIT:-0}"
fi
if grep -q "INVALID" "$in"; then
  echo "0 molecules converted" >&2
  exit 0
fi
{ echo "converted from $in"; cat "$in"; } > "$out"
echo "1 molecule converted" >&2
"""
    _write_exe(d / "obabel", obabel)

    xtb = r"""#!/usr/bin/env bash
set -euo pipefail
[[ -n "${SHIM_CALLS:-}" ]] && echo "xtb $* (cwd=$(basename "$PWD"))" >> "$SHIM_CALLS"
echo "xtb shim: optimising $1"
if [[ -f .CHRG ]]; then echo "charge from .CHRG: $(cat .CHRG)"; fi
if [[ -n "${SHIM_XTB_FAIL:-}" ]]; then
  echo "FAILED TO CONVERGE GEOMETRY OPTIMIZATION"
  exit 1
fi
printf '2\nxtb optimised\nC 0.0 0.0 0.0\nO 1.43 0.0 0.0\n' > xtbopt.xyz
touch .xtboptok
"""
    _write_exe(d / "xtb", xtb)

    crest = r"""#!/usr/bin/env bash
set -euo pipefail
[[ -n "${SHIM_CALLS:-}" ]] && echo "crest $*" >> "$SHIM_CALLS"
ens=""
while [[ $# -gt 0 ]]; do
  case "$1" in
    --screen) ens="$2"; shift 2;;
    *) shift;;
  esac
done
echo "crest shim: screening $ens"
if [[ -f "$ens" ]]; then cp "$ens" crest_ensemble.xyz; else : > crest_ensemble.xyz; fi
exit "${SHIM_CREST_EXIT:-0}"
"""
    _write_exe(d / "crest", crest)

    return d


@pytest.fixture()
def shim_env(shim_bin, tmp_path, monkeypatch):
    """Put the shims first on PATH and route their call log into tmp_path."""
    calls = tmp_path / "calls.log"
    monkeypatch.setenv("PATH", str(shim_bin) + os.pathsep + os.environ["PATH"])
    monkeypatch.setenv("SHIM_CALLS", str(calls))
    for var in ("SHIM_ZERO_FOR", "SHIM_CONFS", "SHIM_CHARGE", "SHIM_NO_CHARGE",
                "SHIM_CONF_EXIT", "SHIM_XTB_FAIL", "SHIM_CREST_EXIT"):
        monkeypatch.delenv(var, raising=False)
    return calls


@pytest.fixture(autouse=True)
def _reset_root_logging():
    yield
    from confrescue.infra.logging import reset_logging
    reset_logging()
