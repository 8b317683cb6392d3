"""
Render annotation analysis engine.

Wires the pipeline together for one source unit:

    source unit -> AnnotationExtractor -> DeclaredGraphBuilder -> declared graph
    source unit -> UsageGraphBuilder -> actual graph
    (declared, actual) -> GraphDiffer -> discrepancies -> DiagnosticReporter

Each unit is analyzed independently and without shared mutable state, so
several units can be analyzed in parallel with no coordination.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.cancellation import CancellationToken
from ..core.config import AnalysisConfig, get_analysis_config
from ..core.exceptions import AnalysisCancelled, ReactAnnotationError, SourceParseError
from ..core.interfaces import ComponentResolver, NullComponentResolver, SourceUnit
from ..core.models import Discrepancy
from ..parsing.parser_factory import ParserFactory, get_global_factory
from ..parsing.tsx_host import TsxSourceUnit
from ..parsing.type_classifier import RenderableTypeClassifier
from ..reporting.diagnostic_reporter import Diagnostic, DiagnosticReporter
from .annotation_extractor import AnnotationExtractor
from .declared_graph import DeclaredGraphBuilder
from .graph_differ import GraphDiffer
from .usage_graph import UsageGraphBuilder

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Outcome of analyzing one source unit."""

    file_path: str
    discrepancies: List[Discrepancy] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    components: int = 0
    error: Optional[str] = None
    processing_time_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


class RenderAnnotationAnalyzer:
    """
    Cross-validates declared render intent against actual usage.

    Args:
        config: Analysis options; defaults to the environment-driven global config
        resolver: Cross-unit component resolver; defaults to resolving nothing
        parser_factory: Source of tree-sitter parsers; defaults to the global factory
        reporter: Diagnostic formatter
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        resolver: Optional[ComponentResolver] = None,
        parser_factory: Optional[ParserFactory] = None,
        reporter: Optional[DiagnosticReporter] = None,
    ):
        self.config = config or get_analysis_config()
        self.resolver = resolver or NullComponentResolver()
        self.parser_factory = parser_factory or get_global_factory()
        self.reporter = reporter or DiagnosticReporter()
        self.classifier = RenderableTypeClassifier(self.config.renderable_types)

        self.extractor = AnnotationExtractor(self.config)
        self.declared_builder = DeclaredGraphBuilder(self.config, self.resolver)
        self.usage_builder = UsageGraphBuilder(self.config, self.resolver)
        self.differ = GraphDiffer(self.config)

    def analyze_unit(self, unit: SourceUnit, cancel_token: Optional[CancellationToken] = None) -> AnalysisResult:
        """
        Analyze one parsed source unit.

        Args:
            unit: Source unit to analyze
            cancel_token: Checked before each component's usage walk

        Returns:
            AnalysisResult with sorted discrepancies and their diagnostics

        Raises:
            AnalysisCancelled: If cancellation was requested; no partial result is kept
        """
        start_time = time.time()

        extraction = self.extractor.extract(unit)
        declared = self.declared_builder.build(extraction, unit)
        actual = self.usage_builder.build(unit, extraction.arena, cancel_token)
        discrepancies = self.differ.diff(
            extraction.arena,
            declared,
            actual,
            extra=extraction.discrepancies,
        )

        result = AnalysisResult(
            file_path=unit.file_path,
            discrepancies=discrepancies,
            diagnostics=self.reporter.report(discrepancies),
            components=len(extraction.arena.components),
            processing_time_seconds=time.time() - start_time,
        )
        logger.debug(
            f"Analyzed {unit.file_path}: {result.components} components, "
            f"{len(result.diagnostics)} diagnostics in {result.processing_time_seconds:.3f}s"
        )
        return result

    def parse_source(self, content: str, file_path: str) -> TsxSourceUnit:
        """
        Parse source text into a unit.

        Files with an unknown extension are parsed with the TSX grammar.
        """
        language = self.parser_factory.detect_language(file_path) or "tsx"
        parser = self.parser_factory.create_parser(language)
        try:
            return TsxSourceUnit.from_source(content, file_path, parser, self.classifier)
        except (ValueError, UnicodeError) as e:
            raise SourceParseError(f"Failed to parse {file_path}: {e}", file_path=file_path)

    def analyze_source(
        self,
        content: str,
        file_path: str = "<source>.tsx",
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        return self.analyze_unit(self.parse_source(content, file_path), cancel_token)

    def analyze_file(self, file_path: str, cancel_token: Optional[CancellationToken] = None) -> AnalysisResult:
        """
        Read and analyze one file.

        Raises:
            SourceParseError: If the file cannot be read
        """
        try:
            content = Path(file_path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise SourceParseError(f"Cannot read {file_path}: {e}", file_path=str(file_path))
        return self.analyze_source(content, str(file_path), cancel_token)

    def analyze_files(
        self,
        file_paths: Sequence[str],
        max_workers: int = 4,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[AnalysisResult]:
        """
        Analyze independent files in parallel.

        Host failures for a file are recorded on its result instead of
        stopping the batch. Cancellation stops the whole batch.

        Returns:
            Results in the order of ``file_paths``
        """
        if not file_paths:
            return []

        logger.info(f"Analyzing {len(file_paths)} files with {max_workers} workers")
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
            futures = [
                executor.submit(self._analyze_file_safely, str(path), cancel_token)
                for path in file_paths
            ]
            results = [future.result() for future in futures]

        failed = sum(1 for result in results if not result.success)
        if failed:
            logger.warning(f"{failed} of {len(results)} files could not be analyzed")
        return results

    def _analyze_file_safely(self, file_path: str, cancel_token: Optional[CancellationToken]) -> AnalysisResult:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(file_path)
        try:
            return self.analyze_file(file_path, cancel_token)
        except AnalysisCancelled:
            raise
        except ReactAnnotationError as e:
            logger.error(f"Error analyzing {file_path}: {e.message}")
            return AnalysisResult(file_path=file_path, error=e.message)
