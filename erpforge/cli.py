"""Command-line interface for ERPForge.

This module provides CLI commands for running saved dashboard sessions,
validating session files and listing available components.

Example:
    $ erpforge run session.yml --output results.yml
    $ erpforge validate session.yml
    $ erpforge list-components
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from erpforge.config.schema import SessionConfig
from erpforge.config.yaml_utils import dump_yaml, load_yaml
from erpforge.constants import PRESET_DEFAULTS, SIMULATION_SEED
from erpforge.core.aggregation import CumulativeView
from erpforge.core.metrics import result_metrics
from erpforge.core.results import SimulationResult
from erpforge.core.session import DashboardSession
from erpforge.core.validation import is_valid_combination
from erpforge.engine.basis import parse_basis
from erpforge.engine.components import parse_projection
from erpforge.engine.formula import parse_formula
from erpforge.errors import ERPForgeError, ExpressionParseError
from erpforge.logging_utils import configure_logging
from erpforge.register_components import register_all, registered_components


def load_session_config(config_path: str) -> SessionConfig:
    """Load and parse a YAML session file.

    Args:
        config_path: Path to the YAML session file.

    Returns:
        Parsed session configuration.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigError: If the YAML is malformed or has the wrong shape.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Session file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = load_yaml(f)

    if not data:
        raise ValueError(f"Empty or invalid session file: {config_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Session file must contain a mapping: {config_path}")
    return SessionConfig.from_dict(data)


def validate_session(config: SessionConfig) -> List[str]:
    """Check every tab of ``config`` without simulating.

    Returns:
        Human-readable problems; empty when the session is valid.
    """
    problems: List[str] = []
    design = config.parameters.get("design_category")
    if not config.tabs:
        problems.append("Session has no tabs")
    if config.tabs and not 0 <= config.active_tab < len(config.tabs):
        problems.append(f"active_tab {config.active_tab} is out of range")
    for index, tab in enumerate(config.tabs):
        label = f"tab {index} ({tab.name})"
        if design is not None and not is_valid_combination(tab.model_category, str(design)):
            problems.append(f"{label}: {tab.model_category} cannot run with {design}")
        checks = (
            ("basis", parse_basis, tab.basis),
            ("formula", parse_formula, tab.formula),
            ("projection", parse_projection, tab.projection),
        )
        for field_name, parser, text in checks:
            try:
                parser(text)
            except ExpressionParseError as exc:
                problems.append(f"{label}: invalid {field_name}: {exc.message}")
    return problems


def run_all_tabs(session: DashboardSession) -> Dict[str, Any]:
    """Simulate every tab in order, then restore the active tab.

    Returns:
        Per-tab result summaries keyed by tab id.
    """
    original = session.registry.active_id.value
    summaries: Dict[str, Any] = {}
    for tab in session.registry:
        session.registry.set_active(tab.id)
        result = session.run_now()
        summaries[str(tab.id)] = {
            "name": tab.name,
            **(result.summary() if result is not None else {"err": "not run"}),
        }
        if result is not None and result.ok and result.multichannel_clean is not None:
            summaries[str(tab.id)]["peak_channel"] = _peak_channel(result, session.head_model.channels)
    if original is not None:
        session.registry.set_active(original)
    return summaries


def _peak_channel(result: SimulationResult, channels: Sequence[str]) -> str:
    names = channels if len(channels) == result.multichannel_clean.shape[1] else None
    return str(result_metrics(result, names)["peak_amplitude"].idxmax())


def _cumulative_summary(view: CumulativeView) -> Dict[str, Any]:
    return {
        "n_contributors": view.n_contributors,
        "n_samples": int(len(view.time)),
        "clean_peak": float(abs(view.clean).max()) if len(view.clean) else 0.0,
        "separators": [float(value) for value in view.separators],
        "skipped": list(view.skipped),
    }


def cmd_run(args: argparse.Namespace) -> int:
    """Run every tab of a saved session.

    Args:
        args: Command-line arguments with config, output and seed.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    try:
        config = load_session_config(args.config)
        print(f"Loading session from {args.config}...")
        session = DashboardSession.from_config(config, seed=args.seed)

        print(f"Running {len(session.registry)} tab(s) (seed: {args.seed})...")
        summaries = run_all_tabs(session)
        cumulative = _cumulative_summary(session.cumulative.value)

        if args.output:
            output_path = Path(args.output)
            print(f"Saving results to {output_path}...")
            payload = {
                "session": session.to_config(metadata={"seed": args.seed}).to_dict(),
                "results": summaries,
                "cumulative": cumulative,
            }
            output_path.write_text(dump_yaml(payload), encoding="utf-8")
            print("Results saved successfully")
        else:
            print("\nSimulation completed!")
            for tab_id, summary in summaries.items():
                status = summary["err"] or "ok"
                print(
                    f"  [{tab_id}] {summary['name']}: {status} "
                    f"({summary.get('n_samples', 0)} samples)"
                )
            print(f"Cumulative: {cumulative['n_contributors']} contributing tab(s)")

        failed = [summary for summary in summaries.values() if summary["err"]]
        return 1 if failed else 0

    except (ERPForgeError, OSError, ValueError) as e:
        print(f"Error running session: {e}", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a YAML session file without running.

    Args:
        args: Command-line arguments with config path.

    Returns:
        Exit code (0 for valid, 1 for invalid).
    """
    try:
        config = load_session_config(args.config)
    except (ERPForgeError, OSError, ValueError) as e:
        print(f"Error validating session: {e}", file=sys.stderr)
        return 1

    print(f"Validating {args.config}...")
    problems = validate_session(config)
    if problems:
        print(f"Session validation failed: {args.config}", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return 1

    print("Session is valid!")
    print(f"  Tabs: {len(config.tabs)}")
    print(f"  Active tab: {config.active_tab}")
    return 0


def cmd_list_components(args: argparse.Namespace) -> int:
    """List registered onset models, noise models, model categories and presets.

    Args:
        args: Command-line arguments (unused).

    Returns:
        Exit code (0 for success).
    """
    register_all()
    print("Available ERPForge Components:")
    print("=" * 50)
    titles = {"onset": "Onset Models", "noise": "Noise Models", "model": "Model Categories"}
    for kind, names in registered_components().items():
        print(f"\n{titles.get(kind, kind)}:")
        for name in names:
            print(f"  - {name}")

    print("\nPresets:")
    for name, (beta, basis) in PRESET_DEFAULTS.items():
        print(f"  - {name} (beta={beta}, basis={basis})")

    print("\nUse 'erpforge run --help' for usage examples")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="erpforge",
        description="ERPForge: interactive ERP simulation dashboard",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (also via ERPFORGE_DEBUG=1)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Simulate every tab of a saved session",
    )
    run_parser.add_argument(
        "config",
        help="Path to YAML session file",
    )
    run_parser.add_argument(
        "--output",
        help="Write session and result summaries to this YAML file",
    )
    run_parser.add_argument(
        "--seed",
        type=int,
        default=SIMULATION_SEED,
        help=f"Simulation seed (default: {SIMULATION_SEED})",
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate YAML session without running",
    )
    validate_parser.add_argument(
        "config",
        help="Path to YAML session file",
    )

    # List components command
    subparsers.add_parser(
        "list-components",
        help="List onset models, noise models, model categories and presets",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(debug=True if args.debug else None)

    # Route to command handlers
    commands = {
        "run": cmd_run,
        "validate": cmd_validate,
        "list-components": cmd_list_components,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
