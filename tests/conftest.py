"""
Pytest configuration and fixtures for render annotation tests.
"""
import os
import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path for all tests
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from react_annotation.analysis.engine import RenderAnnotationAnalyzer  # noqa: E402
from react_annotation.core.config import AnalysisConfig, reset_analysis_config  # noqa: E402
from react_annotation.parsing.parser_factory import ParserFactory  # noqa: E402
from react_annotation.parsing.tsx_host import TsxSourceUnit  # noqa: E402

CONFIG_ENV_VARS = (
    "REACT_ANNOTATION_DEPTH_BOUND",
    "REACT_ANNOTATION_COMPONENT_TAG",
    "REACT_ANNOTATION_RENDERS_TAG",
    "REACT_ANNOTATION_FORWARDING_POLICY",
    "REACT_ANNOTATION_RENDERABLE_TYPES",
)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Run every test with default configuration."""
    original_env = {key: os.environ.pop(key, None) for key in CONFIG_ENV_VARS}
    reset_analysis_config()

    yield

    reset_analysis_config()
    for key, value in original_env.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture(scope="session")
def parser_factory():
    return ParserFactory()


@pytest.fixture
def parse_unit(parser_factory):
    """Parse dedented TSX source into a TsxSourceUnit."""

    def _parse(source: str, file_path: str = "component.tsx") -> TsxSourceUnit:
        parser = parser_factory.create_parser("tsx")
        return TsxSourceUnit.from_source(textwrap.dedent(source), file_path, parser)

    return _parse


@pytest.fixture
def analyze(parser_factory):
    """Analyze dedented TSX source; keyword arguments configure AnalysisConfig."""

    def _analyze(source: str, file_path: str = "component.tsx", **config_options):
        analyzer = RenderAnnotationAnalyzer(
            config=AnalysisConfig(**config_options), parser_factory=parser_factory
        )
        return analyzer.analyze_source(textwrap.dedent(source), file_path)

    return _analyze
