"""
Diagnostic reporting.

Maps discrepancies to immutable diagnostic records and hands them to a
host-provided sink. Every diagnostic is a warning; formatting or sink failures
for one record never suppress the others.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List

from ..core.models import Discrepancy, DiscrepancyKind, SourceSpan

logger = logging.getLogger(__name__)

SEVERITY_WARNING = "warning"
CODE_PREFIX = "react-annotation"

MESSAGE_TEMPLATES: Dict[DiscrepancyKind, str] = {
    DiscrepancyKind.UNDECLARED_USAGE: "{source} renders {target} ({path}) without declaring it",
    DiscrepancyKind.MISSING_DECLARATION: "{source} declares that it renders {target}, but never does",
    DiscrepancyKind.MISMATCHED_TARGET: "'{owner}.{property}' is declared to render {declared}, but receives {actual}",
    DiscrepancyKind.UNRESOLVED_TARGET: "Unresolved render target {target}: {reason}",
    DiscrepancyKind.CYCLE_DEPTH_EXCEEDED: (
        "Forwarding from {source} through '{owner}.{property}' does not terminate "
        "within {bound} property hops"
    ),
    DiscrepancyKind.MALFORMED_TAG: "Malformed @{tag} tag: {reason}",
}


@dataclass(frozen=True)
class Diagnostic:
    """A located, human-readable finding ready for a sink."""

    severity: str
    kind: str
    code: str
    message: str
    span: SourceSpan

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
            "file": self.span.file_path,
            "line": self.span.line,
            "column": self.span.column,
            "end_line": self.span.end_line,
            "end_column": self.span.end_column,
        }

    def __str__(self) -> str:
        return f"{self.span}: {self.severity}: {self.message} [{self.code}]"


class DiagnosticReporter:
    """Formats discrepancies with per-kind message templates."""

    def __init__(self, templates: Dict[DiscrepancyKind, str] = None):
        self.templates = dict(MESSAGE_TEMPLATES)
        if templates:
            self.templates.update(templates)

    def report(self, discrepancies: Iterable[Discrepancy]) -> List[Diagnostic]:
        """
        Convert discrepancies to diagnostics, preserving their order.

        Args:
            discrepancies: Sorted discrepancies of one unit

        Returns:
            One diagnostic per discrepancy
        """
        diagnostics = []
        for discrepancy in discrepancies:
            diagnostics.append(
                Diagnostic(
                    severity=SEVERITY_WARNING,
                    kind=discrepancy.kind.value,
                    code=f"{CODE_PREFIX}/{discrepancy.kind.value}",
                    message=self.format_message(discrepancy),
                    span=discrepancy.span,
                )
            )
        return diagnostics

    def format_message(self, discrepancy: Discrepancy) -> str:
        template = self.templates.get(discrepancy.kind)
        if template is None:
            return discrepancy.message
        try:
            return template.format(**discrepancy.details)
        except Exception as e:
            logger.debug(f"Falling back to raw message for {discrepancy.kind.value}: {e}")
            return discrepancy.message


def emit(diagnostics: Iterable[Diagnostic], sink: Callable[[Diagnostic], Any]) -> int:
    """
    Hand diagnostics to a sink one by one.

    Returns:
        Number of diagnostics the sink accepted without raising
    """
    delivered = 0
    for diagnostic in diagnostics:
        try:
            sink(diagnostic)
            delivered += 1
        except Exception as e:
            logger.error(f"Diagnostic sink failed for {diagnostic.span}: {e}")
    return delivered
