# src/confrescue/cli/app.py
import argparse
import logging
import os
import sys
from pathlib import Path

from confrescue import __version__
from confrescue.config.loader import CONFIG_FILENAME, dump_config, load_config
from confrescue.domain.context import RUN_LOG
from confrescue.errors import PipelineError
from confrescue.infra.config_snapshot import write_config_snapshot
from confrescue.infra.logging import setup_logging
from confrescue.pipeline.run import run_pipeline

DESCRIPTION = (
    "Generate conformers for a molecule: build a 3D structure (Open Babel), "
    "detect its net charge, run a force-field conformer search, rescue a failed "
    "search with an xtb re-optimisation, and screen the result with CREST."
)

EPILOG = (
    f"Defaults can also be set in {CONFIG_FILENAME} in the working directory "
    "([run], [tools], [runtime] sections). Command-line flags take precedence."
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser("confrescue", description=DESCRIPTION, epilog=EPILOG)
    p.add_argument("input", help="Structure file, or a chemical identifier (SMILES) if no such file exists")
    p.add_argument("--nconfs", type=int, metavar="N", help="Number of conformers to request (default: 10)")
    p.add_argument("--ff", metavar="FF", help="Force field for 3D build and conformer search (default: uff)")
    p.add_argument("--chrg", metavar="C", help="Net charge; skips charge detection when given")
    p.add_argument(
        "--theory",
        metavar="NAME",
        help="Level-of-theory flag passed verbatim to the screening tool (default: --gfnff)",
    )
    rescue = p.add_mutually_exclusive_group()
    rescue.add_argument("--rescue", dest="rescue", action="store_true", default=None,
                        help="Enable the rescue protocol after a failed conformer search (default)")
    rescue.add_argument("--norescue", dest="rescue", action="store_false",
                        help="Disable the rescue protocol")
    p.add_argument("--config", help=f"Additional TOML file; overrides {CONFIG_FILENAME} in the working directory")
    p.add_argument("--workdir", help="Working directory for all intermediate files (default: current directory)")
    p.add_argument("--timeout", type=float, metavar="SECONDS", help="Kill any external tool running longer than this")
    p.add_argument("--log-console", action=argparse.BooleanOptionalAction, default=True,
                   help="Echo log records to stderr")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def _join_theory_value(argv: list[str]) -> list[str]:
    # Theory names look like options ("--gfn2"); glue them to --theory so
    # argparse does not take them for unknown flags.
    out: list[str] = []
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok == "--theory" and i + 1 < len(argv):
            out.append(f"--theory={argv[i + 1]}")
            i += 2
            continue
        out.append(tok)
        i += 1
    return out


def _overrides(args: argparse.Namespace) -> dict:
    run = {
        "nconfs": args.nconfs,
        "forcefield": args.ff,
        "charge": args.chrg,
        "theory": args.theory,
        "rescue": args.rescue,
    }
    runtime = {"timeout_s": args.timeout}
    return {
        "run": {k: v for k, v in run.items() if v is not None},
        "runtime": {k: v for k, v in runtime.items() if v is not None},
    }


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(_join_theory_value(list(sys.argv[1:] if argv is None else argv)))

    workdir = Path(args.workdir or os.getcwd()).resolve()
    workdir.mkdir(parents=True, exist_ok=True)
    try:
        cfg = load_config(workdir, config_path=args.config, overrides=_overrides(args))
    except (ValueError, FileNotFoundError) as e:
        parser.error(str(e))

    setup_logging(workdir / RUN_LOG, also_console=args.log_console)
    dump_config(cfg, log_fn=logging.debug)
    write_config_snapshot(cfg)

    try:
        run_pipeline(cfg, args.input)
    except PipelineError as e:
        logging.error(f"[run] aborted: {e}")
        if not args.log_console:
            print(f"confrescue: error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
