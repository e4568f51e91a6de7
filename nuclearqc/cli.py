"""Command-line interface for nuclearqc."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable

from nuclearqc.config import load_json_config
from nuclearqc.core.errors import ProfileConfigError, StructuralInputError
from nuclearqc.core.profiles import PROFILE_NAMES
from nuclearqc.pipeline.io import close_logger, setup_logger
from nuclearqc.pipeline.run import RUN_MODES, resolve_run_config, run_pipeline

LOGGER_NAME = "nuclearqc"
EXIT_INPUT_ERROR = 2


def _run_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nuclearqc run", description="Score nuclear state per cell or per sample")
    parser.add_argument("--input", required=True, help="10x matrix directory or .h5ad file")
    parser.add_argument("--out", required=True, help="Output directory")
    parser.add_argument("--profile", choices=PROFILE_NAMES, default=None, help="Scoring profile (default immune_v1)")
    parser.add_argument(
        "--strict-nuclear",
        action="store_true",
        default=None,
        help="Use the bulk-oriented confidence and rls formulas",
    )
    parser.add_argument("--mode", choices=RUN_MODES, default=None, help="Per-cell or per-sample output")
    parser.add_argument(
        "--normalize",
        action="store_true",
        default=None,
        help="Scale counts to 1e4 per cell and log1p before scoring",
    )
    parser.add_argument("--config", default=None, help="JSON run config; CLI flags override it")
    parser.add_argument("--plots", action="store_true", default=None, help="Write QC figures")
    parser.add_argument("--sample-col", default=None, help="adata.obs column holding sample labels")
    return parser


def run_main(argv: Iterable[str] | None = None) -> int:
    """Run the scoring pipeline.

    Returns:
        0 on success, 2 when the input or configuration is rejected.
    """
    args = _run_parser().parse_args(list(argv) if argv is not None else None)
    out_dir = Path(args.out)
    logger = setup_logger(out_dir / "nuclearqc.log", LOGGER_NAME)
    try:
        file_config = load_json_config(args.config) if args.config else None
        config = resolve_run_config(
            file_config,
            profile=args.profile,
            strict_nuclear=args.strict_nuclear,
            mode=args.mode,
            normalize=args.normalize,
            plots=args.plots,
            sample_col=args.sample_col,
        )
        run_pipeline(args.input, out_dir, config, logger=logger)
    except (StructuralInputError, ProfileConfigError, FileNotFoundError, KeyError, ValueError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return EXIT_INPUT_ERROR
    finally:
        close_logger(logger)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(description="nuclearqc CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Score an expression matrix", add_help=False)

    args, remainder = parser.parse_known_args(list(argv) if argv is not None else None)
    if args.command == "run":
        return run_main(remainder)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
