"""
Parser Factory

Central factory for creating tree-sitter parsers for TSX/JSX and TypeScript
source units. Handles grammar loading, language detection from file
extensions, and caching of the immutable grammar objects. Parser instances are
created per request because tree-sitter parsers must not be shared between
threads that analyze units in parallel.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Set

from tree_sitter import Language, Parser

from ..core.exceptions import DependencyError

# Configure logging
logger = logging.getLogger(__name__)


class ParserFactory:
    """
    Factory class for creating and managing tree-sitter parsers.

    This factory provides a centralized way to:
    - Detect the grammar to use from file extensions
    - Load and cache grammar objects
    - Create parser instances bound to a grammar
    - Handle unsupported files gracefully
    """

    def __init__(self):
        """Initialize the parser factory with grammar mappings and cache."""

        # File extension to grammar mapping
        self.extension_mapping: Dict[str, str] = {
            # JSX-capable sources
            ".tsx": "tsx",
            ".jsx": "tsx",
            ".js": "tsx",
            ".mjs": "tsx",
            ".cjs": "tsx",
            # Plain TypeScript (angle-bracket casts conflict with JSX)
            ".ts": "typescript",
            ".mts": "typescript",
            ".cts": "typescript",
        }

        # Grammar name -> (module, language function)
        self.language_modules: Dict[str, tuple] = {
            "tsx": ("tree_sitter_typescript", "language_tsx"),
            "typescript": ("tree_sitter_typescript", "language_typescript"),
        }

        # Cache for grammar objects; parsers themselves are never cached
        self._language_cache: Dict[str, Language] = {}
        self._lock = threading.Lock()

        # Statistics for monitoring
        self.stats = {
            "parsers_created": 0,
            "cache_hits": 0,
            "cache_misses": 0,
            "unknown_languages": 0,
            "successful_detections": 0,
        }

        logger.info(
            f"ParserFactory initialized with support for {len(self.extension_mapping)} extensions"
        )

    def detect_language(self, file_path: str) -> Optional[str]:
        """
        Detect the grammar for a file from its extension.

        Args:
            file_path: Path to the source file

        Returns:
            Grammar name or None if not supported
        """
        extension = Path(file_path).suffix.lower()

        if extension in self.extension_mapping:
            language = self.extension_mapping[extension]
            self.stats["successful_detections"] += 1
            logger.debug(
                f"Detected grammar '{language}' from extension '{extension}' for {file_path}"
            )
            return language

        self.stats["unknown_languages"] += 1
        logger.debug(f"Could not detect grammar for file: {file_path}")
        return None

    def get_language(self, language: str) -> Language:
        """
        Get the grammar object for a language, loading it on first use.

        Args:
            language: Grammar name ('tsx' or 'typescript')

        Returns:
            tree_sitter.Language instance

        Raises:
            DependencyError: If the grammar package is missing or unusable
        """
        with self._lock:
            if language in self._language_cache:
                self.stats["cache_hits"] += 1
                return self._language_cache[language]

            self.stats["cache_misses"] += 1
            if language not in self.language_modules:
                raise DependencyError(f"Unsupported grammar: {language}")

            module_name, function_name = self.language_modules[language]
            try:
                module = __import__(module_name)
                language_function = getattr(module, function_name)
                ts_language = Language(language_function())
            except (ImportError, AttributeError) as e:
                logger.error(f"Failed to load tree-sitter grammar for {language}: {e}")
                raise DependencyError(
                    f"Tree-sitter grammar '{module_name}.{function_name}' is not available: {e}",
                    dependency_name=module_name,
                )

            self._language_cache[language] = ts_language
            logger.debug(f"Tree-sitter grammar loaded for {language}")
            return ts_language

    def create_parser(self, language: str) -> Parser:
        """
        Create a new parser bound to a grammar.

        Args:
            language: Grammar name

        Returns:
            tree_sitter.Parser instance owned by the caller
        """
        parser = Parser()
        parser.language = self.get_language(language)
        self.stats["parsers_created"] += 1
        return parser

    def get_parser_for_file(self, file_path: str) -> Optional[Parser]:
        """
        Get a parser suitable for a specific file.

        Args:
            file_path: Path to the source file

        Returns:
            Parser instance or None if the file type is not supported
        """
        language = self.detect_language(file_path)
        if language is None:
            return None
        return self.create_parser(language)

    def is_supported_file(self, file_path: str) -> bool:
        return Path(file_path).suffix.lower() in self.extension_mapping

    def get_supported_extensions(self) -> Set[str]:
        """
        Get set of all supported file extensions.

        Returns:
            Set of file extensions including the dot (e.g., {'.tsx', '.ts'})
        """
        return set(self.extension_mapping.keys())

    def get_stats(self) -> Dict[str, int]:
        """
        Get factory usage statistics.

        Returns:
            Dictionary of statistics
        """
        return self.stats.copy()


# Global factory instance for convenience
_global_factory: Optional[ParserFactory] = None


def get_global_factory() -> ParserFactory:
    """
    Get the global parser factory instance.

    Returns:
        Global ParserFactory instance
    """
    global _global_factory
    if _global_factory is None:
        _global_factory = ParserFactory()
    return _global_factory
