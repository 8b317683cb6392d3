"""Tree-sitter host for TSX/JSX source units.

Self-contained host layer including:
- Parser factory for creating TSX/TypeScript parsers
- Source unit wrapper exposing doc comments, component shapes and props
- Doc tag grammar and renderable type classification
"""
