"""
Analysis configuration for render annotation checking.

This module provides the configurable options of the engine: the forwarding
depth bound, the recognized tag names (so alternate documentation dialects can
be supported), the forwarding confidence policy and the set of type names that
are classified as renderable content.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

POLICY_TRANSITIVE = "transitive"
POLICY_SINGLE_HOP = "single-hop"
FORWARDING_POLICIES = (POLICY_TRANSITIVE, POLICY_SINGLE_HOP)

DEFAULT_DEPTH_BOUND = 8

DEFAULT_RENDERABLE_TYPES: FrozenSet[str] = frozenset(
    {
        "React.ReactNode",
        "ReactNode",
        "React.ReactElement",
        "ReactElement",
        "JSX.Element",
        "React.JSX.Element",
        "React.ReactChild",
        "ReactChild",
        "React.ReactPortal",
        "ReactPortal",
    }
)


@dataclass
class AnalysisConfig:
    """
    Configuration for one analysis engine instance.

    Attributes:
        forwarding_depth_bound: Maximum number of property hops followed by the
            forwarding walk before a chain is treated as unresolved
        component_tag: Doc tag name marking a component definition
        renders_tag: Doc tag name declaring a render target
        forwarding_policy: "transitive" or "single-hop" confidence policy
        renderable_types: Type names classified as renderable content
    """

    forwarding_depth_bound: int = DEFAULT_DEPTH_BOUND
    component_tag: str = "component"
    renders_tag: str = "renders"
    forwarding_policy: str = POLICY_TRANSITIVE
    renderable_types: FrozenSet[str] = field(default_factory=lambda: DEFAULT_RENDERABLE_TYPES)

    def __post_init__(self):
        """Validate configuration parameters after initialization."""
        if self.forwarding_depth_bound < 1:
            logger.warning(
                f"Forwarding depth bound must be at least 1, got {self.forwarding_depth_bound}"
            )
            self.forwarding_depth_bound = 1

        self.component_tag = self.component_tag.strip().lstrip("@")
        self.renders_tag = self.renders_tag.strip().lstrip("@")
        if not self.component_tag or not self.renders_tag:
            raise ConfigurationError(
                "Tag names must not be empty",
                config_key="component_tag" if not self.component_tag else "renders_tag",
            )
        if self.component_tag == self.renders_tag:
            raise ConfigurationError(
                f"Component and renders tags must differ, both are '{self.component_tag}'",
                config_key="renders_tag",
                config_value=self.renders_tag,
            )

        if self.forwarding_policy not in FORWARDING_POLICIES:
            raise ConfigurationError(
                f"Unknown forwarding policy '{self.forwarding_policy}', "
                f"expected one of {', '.join(FORWARDING_POLICIES)}",
                config_key="forwarding_policy",
                config_value=self.forwarding_policy,
            )

        self.renderable_types = frozenset(self.renderable_types)

        logger.debug(
            f"Analysis config initialized: depth bound={self.forwarding_depth_bound}, "
            f"tags=@{self.component_tag}/@{self.renders_tag}, policy={self.forwarding_policy}"
        )

    @property
    def transitive(self) -> bool:
        return self.forwarding_policy == POLICY_TRANSITIVE


def load_analysis_config() -> AnalysisConfig:
    """
    Load analysis configuration from environment variables with fallback defaults.

    Environment Variables:
        REACT_ANNOTATION_DEPTH_BOUND: Forwarding depth bound (default: 8)
        REACT_ANNOTATION_COMPONENT_TAG: Component tag name (default: component)
        REACT_ANNOTATION_RENDERS_TAG: Renders tag name (default: renders)
        REACT_ANNOTATION_FORWARDING_POLICY: transitive or single-hop (default: transitive)
        REACT_ANNOTATION_RENDERABLE_TYPES: Comma separated type names replacing the defaults

    Returns:
        AnalysisConfig: Configured analysis parameters

    Raises:
        ConfigurationError: If a value cannot be interpreted
    """
    load_dotenv()

    raw_bound = os.getenv("REACT_ANNOTATION_DEPTH_BOUND", str(DEFAULT_DEPTH_BOUND))
    try:
        depth_bound = int(raw_bound)
    except ValueError:
        raise ConfigurationError(
            f"Depth bound must be an integer, got '{raw_bound}'",
            config_key="REACT_ANNOTATION_DEPTH_BOUND",
            config_value=raw_bound,
        )

    renderable_types = DEFAULT_RENDERABLE_TYPES
    raw_types = os.getenv("REACT_ANNOTATION_RENDERABLE_TYPES")
    if raw_types:
        renderable_types = frozenset(t.strip() for t in raw_types.split(",") if t.strip())

    config = AnalysisConfig(
        forwarding_depth_bound=depth_bound,
        component_tag=os.getenv("REACT_ANNOTATION_COMPONENT_TAG", "component"),
        renders_tag=os.getenv("REACT_ANNOTATION_RENDERS_TAG", "renders"),
        forwarding_policy=os.getenv("REACT_ANNOTATION_FORWARDING_POLICY", POLICY_TRANSITIVE),
        renderable_types=renderable_types,
    )

    logger.info(
        f"Loaded analysis configuration: depth bound={config.forwarding_depth_bound}, "
        f"policy={config.forwarding_policy}, "
        f"tags=@{config.component_tag}/@{config.renders_tag}"
    )

    return config


# Global configuration instance
_analysis_config: Optional[AnalysisConfig] = None


def get_analysis_config() -> AnalysisConfig:
    """
    Get global analysis configuration instance (singleton pattern).

    Returns:
        AnalysisConfig: Global configuration instance
    """
    global _analysis_config
    if _analysis_config is None:
        _analysis_config = load_analysis_config()
    return _analysis_config


def reset_analysis_config():
    """Reset the global analysis configuration. Useful for testing."""
    global _analysis_config
    _analysis_config = None
    logger.debug("Analysis configuration reset")
