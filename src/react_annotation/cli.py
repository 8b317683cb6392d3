"""
Command-line host for render annotation analysis.

Usage:
    react-annotation-lint [paths ...] [options]

Options:
    --depth-bound N      Forwarding depth bound (default: 8)
    --policy P           Forwarding confidence policy: transitive or single-hop
    --component-tag T    Tag name marking components (default: component)
    --renders-tag T      Tag name declaring render targets (default: renders)
    --format F           Output format: text or json
    --strict             Exit with status 1 when any diagnostic is reported
    --workers N          Number of files analyzed in parallel
    --verbose            Enable debug logging
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .analysis.engine import AnalysisResult, RenderAnnotationAnalyzer
from .core.config import FORWARDING_POLICIES, load_analysis_config
from .core.exceptions import AnalysisCancelled, ReactAnnotationError, format_error_details
from .parsing.parser_factory import get_global_factory
from .reporting.diagnostic_reporter import emit

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_HOST_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="react-annotation-lint",
        description="Cross-check @component / @renders annotations against actual JSX usage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    react-annotation-lint src/                       # Check every TSX/JSX/TS file under src/
    react-annotation-lint App.tsx --strict           # Fail when App.tsx has findings
    react-annotation-lint src/ --policy single-hop   # Only accept exact forwarded targets
    react-annotation-lint src/ --format json         # Machine-readable output
        """,
    )
    parser.add_argument("paths", nargs="*", default=["."], help="Files or directories to analyze")
    parser.add_argument("--depth-bound", type=int, help="Forwarding depth bound")
    parser.add_argument("--policy", choices=FORWARDING_POLICIES, help="Forwarding confidence policy")
    parser.add_argument("--component-tag", help="Tag name marking component definitions")
    parser.add_argument("--renders-tag", help="Tag name declaring render targets")
    parser.add_argument("--format", choices=("text", "json"), default="text", help="Output format")
    parser.add_argument(
        "--strict", action="store_true", help="Exit with status 1 when diagnostics are reported"
    )
    parser.add_argument("--workers", type=int, default=4, help="Files analyzed in parallel")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def collect_files(paths: Sequence[str]) -> List[str]:
    """Expand directories into the supported source files they contain, sorted."""
    factory = get_global_factory()
    extensions = factory.get_supported_extensions()
    files = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(
                str(candidate)
                for candidate in sorted(path.rglob("*"))
                if candidate.is_file()
                and candidate.suffix.lower() in extensions
                and "node_modules" not in candidate.parts
            )
        else:
            files.append(str(path))
    return files


def _print_text(results: List[AnalysisResult]) -> None:
    for result in results:
        if result.error:
            print(f"{result.file_path}: error: {result.error}", file=sys.stderr)
        emit(result.diagnostics, print)
    total = sum(len(result.diagnostics) for result in results)
    print(f"{total} warning(s) in {len(results)} file(s)")


def _print_json(results: List[AnalysisResult]) -> None:
    payload = {
        "files": [
            {
                "file": result.file_path,
                "error": result.error,
                "diagnostics": [diagnostic.to_dict() for diagnostic in result.diagnostics],
            }
            for result in results
        ]
    }
    print(json.dumps(payload, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the analyzer and return the process exit status."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_analysis_config()
        overrides = {
            "forwarding_depth_bound": args.depth_bound,
            "forwarding_policy": args.policy,
            "component_tag": args.component_tag,
            "renders_tag": args.renders_tag,
        }
        overrides = {key: value for key, value in overrides.items() if value is not None}
        if overrides:
            config = dataclasses.replace(config, **overrides)

        analyzer = RenderAnnotationAnalyzer(config=config)
        results = analyzer.analyze_files(collect_files(args.paths), max_workers=args.workers)
        logger.debug(f"Parser factory stats: {analyzer.parser_factory.get_stats()}")
    except AnalysisCancelled:
        logger.warning("Analysis cancelled")
        return EXIT_HOST_ERROR
    except ReactAnnotationError as e:
        logger.error(f"Analysis failed: {format_error_details(e)}")
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_HOST_ERROR

    if args.format == "json":
        _print_json(results)
    else:
        _print_text(results)

    if any(not result.success for result in results):
        return EXIT_HOST_ERROR
    if args.strict and any(result.diagnostics for result in results):
        return EXIT_DIAGNOSTICS
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
