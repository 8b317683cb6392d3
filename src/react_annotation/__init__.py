"""Static cross-validation of React render annotations.

Compares the composition declared with ``@component`` / ``@renders`` doc tags
against the composition actually traced from TSX implementations.
"""

from .analysis.engine import AnalysisResult, RenderAnnotationAnalyzer
from .core.cancellation import CancellationToken
from .core.config import AnalysisConfig, get_analysis_config, load_analysis_config
from .reporting.diagnostic_reporter import Diagnostic, DiagnosticReporter, emit

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "CancellationToken",
    "Diagnostic",
    "DiagnosticReporter",
    "RenderAnnotationAnalyzer",
    "emit",
    "get_analysis_config",
    "load_analysis_config",
]
