"""Command-line interface for llmfit."""

import argparse
import json
import logging
import sys
from pathlib import Path

from llmfit.config import CONFIG_PATHS, Config
from llmfit.fit import FitAssessment, FitFilter, assess, assess_all, filter_fits
from llmfit.models import MODELS, CatalogError, ModelSpec, get_model_by_name, load_catalog
from llmfit.system.detector import SystemDetector, SystemSnapshot

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def _detect(config: Config) -> SystemSnapshot:
    return SystemDetector(timeout=config.probe_timeout).detect()


def _load_models(args: argparse.Namespace, config: Config) -> list[ModelSpec]:
    """Catalog from --catalog, then the config file, then the built-in list."""
    path = args.catalog or config.catalog_path
    if path:
        return load_catalog(Path(path))
    return MODELS


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


def _format_context(tokens: int) -> str:
    return f"{tokens // 1000}k" if tokens >= 1000 else str(tokens)


def format_fit_table(fits: list[FitAssessment]) -> str:
    """Render assessments as a fixed-width table."""
    header = (
        f"{'Model':<32} {'Provider':<12} {'Params':>7} {'Mode':<8} "
        f"{'Mem %':>6} {'Ctx':>6}  {'Fit':<10} Use Case"
    )
    lines = [header, "-" * len(header)]
    for fit in fits:
        model = fit.model
        lines.append(
            f"{_truncate(model.name, 32):<32} {_truncate(model.provider, 12):<12} "
            f"{model.parameter_count:>7} {fit.run_mode_text:<8} "
            f"{fit.utilization_pct:>5.0f}% {_format_context(model.context_length):>6}  "
            f"{fit.fit_text:<10} {_truncate(model.use_case, 30)}"
        )
    return "\n".join(lines)


def format_fit_detail(fit: FitAssessment, snapshot: SystemSnapshot) -> str:
    """Render a single assessment with model details and notes."""
    model = fit.model
    lines = [
        f"Model:        {model.name}",
        f"Provider:     {model.provider}",
        f"Parameters:   {model.parameter_count}",
        f"Quantization: {model.quantization}",
        f"Context:      {model.context_length} tokens",
        f"Use Case:     {model.use_case}",
        "",
        "-- System Fit --",
        f"Fit Level:    {fit.fit_text}",
        f"Run Mode:     {fit.run_mode_text}",
        "",
        "-- Memory --",
    ]

    if model.min_vram_gb is not None:
        if not snapshot.has_gpu:
            vram_label = "no GPU"
        elif snapshot.gpu_memory_gb is None:
            vram_label = "shared memory" if snapshot.unified_memory else "system: unknown"
        elif snapshot.unified_memory:
            vram_label = f"shared: {snapshot.gpu_memory_gb:.1f} GB"
        else:
            vram_label = f"system: {snapshot.gpu_memory_gb:.1f} GB"
        lines.append(f"Min VRAM:     {model.min_vram_gb:.1f} GB  ({vram_label})")

    lines.extend([
        f"Min RAM:      {model.min_ram_gb:.1f} GB  (system: {snapshot.available_ram_gb:.1f} GB avail)",
        f"Rec RAM:      {model.recommended_ram_gb:.1f} GB",
        f"Mem Usage:    {fit.utilization_pct:.1f}%  "
        f"({fit.memory_required_gb:.1f} / {fit.memory_available_gb:.1f} GB)",
    ])

    if fit.notes:
        lines.extend(["", "-- Notes --"])
        lines.extend(fit.notes)

    return "\n".join(lines)


def cmd_system(args: argparse.Namespace) -> int:
    """Handle the system command."""
    config = Config.load()
    snapshot = _detect(config)

    if args.json:
        print(json.dumps(snapshot.to_dict(), indent=2))
        return 0

    print("=== System Specifications ===")
    print(snapshot)
    return 0


def cmd_fit(args: argparse.Namespace) -> int:
    """Handle the fit command - rank catalog models against this system."""
    config = Config.load()

    try:
        models = _load_models(args, config)
    except CatalogError as e:
        print(f"Catalog error: {e}", file=sys.stderr)
        return 1

    snapshot = _detect(config)
    fits = filter_fits(
        assess_all(snapshot, models, config.policy),
        FitFilter(args.filter),
        providers=args.provider,
        search=args.search,
    )
    if args.limit:
        fits = fits[: args.limit]

    if args.json:
        data = {
            "system": snapshot.to_dict(),
            "models": [fit.to_dict() for fit in fits],
        }
        print(json.dumps(data, indent=2))
        return 0

    print(snapshot)
    print()
    if not fits:
        print("No models match the given filters")
        return 0
    print(format_fit_table(fits))
    print(f"\n{len(fits)} of {len(models)} models shown")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Handle the info command - show the fit of one model."""
    config = Config.load()

    try:
        models = _load_models(args, config)
    except CatalogError as e:
        print(f"Catalog error: {e}", file=sys.stderr)
        return 1

    model = get_model_by_name(args.name, models)
    if model is None:
        print(f"Unknown model: {args.name}", file=sys.stderr)
        return 1

    snapshot = _detect(config)
    fit = assess(snapshot, model, config.policy)

    if args.json:
        print(json.dumps(fit.to_dict(), indent=2))
    else:
        print(format_fit_detail(fit, snapshot))
    return 0


def _config_issues(config: Config) -> list[str]:
    """Config problems, including a catalog file that does not load."""
    issues = config.validate()
    if config.catalog_path and config.catalog_path.exists():
        try:
            load_catalog(config.catalog_path)
        except CatalogError as e:
            issues.append(str(e))
    return issues


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the config command."""
    config = Config.load()

    if args.validate:
        issues = _config_issues(config)
        if issues:
            print("Configuration issues:")
            for issue in issues:
                print(f"  - {issue}")
            return 1
        print("Configuration is valid")
        return 0

    if args.show:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    if args.init:
        config_path = CONFIG_PATHS[0]
        if config_path.exists() and not args.force:
            print(f"Config already exists at {config_path}")
            print("Use --force to overwrite")
            return 1
        config.save(config_path)
        print(f"Config initialized at {config_path}")
        return 0

    # Default: where settings come from and the active fit thresholds
    source = next((path for path in CONFIG_PATHS if path.exists()), None)
    if source:
        print(f"Config file:  {source}")
    else:
        print(f"Config file:  none (defaults; create one at {CONFIG_PATHS[0]})")
    print(f"Catalog:      {config.catalog_path or 'built-in'}")
    print(f"Probe limit:  {config.probe_timeout:g}s per tool")
    policy = config.policy
    print(
        f"Fit bands:    Perfect <= {policy.perfect_max_pct:g}%, "
        f"Good <= {policy.good_max_pct:g}%, Marginal <= {policy.marginal_max_pct:g}%"
    )
    return 0


def _add_catalog_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--catalog",
        help="JSON model catalog to use instead of the built-in one",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="llmfit",
        description="Check which LLMs this machine can run locally",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # system command
    system_parser = subparsers.add_parser(
        "system",
        help="Show detected CPU, RAM and GPU",
    )
    system_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    # fit command
    fit_parser = subparsers.add_parser(
        "fit",
        help="Rank catalog models by how well they fit this system",
    )
    fit_parser.add_argument(
        "--filter",
        choices=[f.value for f in FitFilter],
        default=FitFilter.ALL.value,
        help="Only show models with this fit",
    )
    fit_parser.add_argument(
        "--limit",
        type=int,
        help="Show at most this many models",
    )
    fit_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    fit_parser.add_argument(
        "--provider",
        action="append",
        help="Only show models from this provider (repeatable)",
    )
    fit_parser.add_argument(
        "--search",
        help="Only show models whose name, provider, size or use case contains this text",
    )
    _add_catalog_argument(fit_parser)

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Show fit details for one model",
    )
    info_parser.add_argument("name", help="Model name")
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    _add_catalog_argument(info_parser)

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
    )
    config_parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Initialize default configuration file",
    )
    config_parser.add_argument(
        "--force",
        action="store_true",
        help="Force overwrite existing config",
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "system": cmd_system,
        "fit": cmd_fit,
        "info": cmd_info,
        "config": cmd_config,
    }

    cmd_func = commands.get(args.command)
    if cmd_func is None:
        parser.print_help()
        return 1

    return cmd_func(args)


if __name__ == "__main__":
    sys.exit(main())
