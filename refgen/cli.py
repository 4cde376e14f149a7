"""CLI entrypoints for refgen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from .config import CONFIG_FILENAME, ConfigError, RefGenConfig, load_config, load_reference_data
from .loader import MalformedInputError, MissingInputFileError, load_tools
from .logging import configure_logging, get_logger
from .naming import NameResolver
from .orchestrator import TOOLS_SUBDIR, Orchestrator, RunSettings
from .rendering.engine import TemplateRenderer
from .validators.artifacts import ArtifactVerifier, GenerationReport, scan_artifacts, summarize, write_report

DEFAULT_OUTPUT_DIR = Path("generated")

_FATAL_ERRORS = (ConfigError, MissingInputFileError, MalformedInputError)


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_common_inputs(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tools", type=Path, help="Path to the tool-list JSON produced by the extractor.")
    parser.add_argument("--output", type=Path, help="Directory that receives the generated documentation.")
    parser.add_argument("--data-dir", type=Path, help="Directory holding brand/compound/parameter JSON maps.")
    parser.add_argument(
        "--config",
        type=Path,
        help=f"Path to the configuration file (defaults to ./{CONFIG_FILENAME}).",
    )
    parser.add_argument("--log-file", type=Path, help="Also write a DEBUG-level run log to this file.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refgen",
        description="Generate CLI reference documentation from extracted tool metadata.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Write tool pages, namespace articles and the generation report.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_common_inputs(generate_parser)
    generate_parser.add_argument("--namespaces", type=Path, help="Path to the namespace-list JSON.")
    generate_parser.add_argument("--version-file", type=Path, help="File holding the CLI version string.")
    generate_parser.add_argument("--templates-dir", type=Path, help="Directory with template overrides.")
    generate_parser.add_argument(
        "--skip-ai",
        action="store_true",
        help="Render namespace articles from static data only.",
    )
    generate_parser.add_argument(
        "--namespace",
        action="append",
        default=[],
        metavar="ID",
        help="Limit generation to this namespace (repeatable).",
    )

    verify_parser = subparsers.add_parser(
        "verify",
        help="Check existing tool pages against the tool list without regenerating.",
    )
    _add_verbose_option(verify_parser, suppress_default=True)
    _add_common_inputs(verify_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for refgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)
    logger = get_logger("cli")

    try:
        config = load_config(args.config or Path.cwd())
        if args.command == "generate":
            report = Orchestrator().run(_generate_settings(parser, args, config))
        elif args.command == "verify":
            report = _run_verify(parser, args, config)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except _FATAL_ERRORS as exc:
        logger.debug("Fatal error", exc_info=True)
        parser.exit(1, f"refgen {args.command} failed: {exc}\n")

    for line in summarize(report):
        print(line)
    if report.has_missing_artifacts:
        parser.exit(1, f"{report.total_missing} tool artifact(s) missing\n")


def _generate_settings(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: RefGenConfig
) -> RunSettings:
    tools_path = _require(parser, args.tools or config.inputs.tools, "--tools")
    namespaces_path = _require(parser, args.namespaces or config.inputs.namespaces, "--namespaces")
    return RunSettings(
        tools_path=tools_path,
        namespaces_path=namespaces_path,
        output_dir=_output_dir(args, config),
        version_file=args.version_file or config.inputs.version_file,
        data_dir=args.data_dir or config.data_dir,
        templates_dir=args.templates_dir or config.templates_dir,
        skip_ai=bool(args.skip_ai) or config.generation.skip_ai,
        namespaces=list(args.namespace) or list(config.generation.namespaces),
        llm=config.llm,
        retry=config.retry,
    )


def _run_verify(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: RefGenConfig
) -> GenerationReport:
    tools = load_tools(_require(parser, args.tools or config.inputs.tools, "--tools"))
    output_dir = _output_dir(args, config)
    namer = NameResolver(load_reference_data(args.data_dir or config.data_dir))
    report = ArtifactVerifier(namer).verify(tools, scan_artifacts(output_dir / TOOLS_SUBDIR))
    write_report(report, output_dir, TemplateRenderer(config.templates_dir))
    return report


def _output_dir(args: argparse.Namespace, config: RefGenConfig) -> Path:
    return args.output or config.output_dir or DEFAULT_OUTPUT_DIR


def _require(parser: argparse.ArgumentParser, value: Optional[Path], flag: str) -> Path:
    if value is None:
        parser.exit(1, f"{flag} is required (or set it under inputs in {CONFIG_FILENAME})\n")
    return value


if __name__ == "__main__":
    main(sys.argv[1:])
