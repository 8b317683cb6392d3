"""Render graph construction and validation.

Pipeline stages:
- AnnotationExtractor: component declarations and render tags
- DeclaredGraphBuilder: intended composition edges
- UsageGraphBuilder: observed composition, including property forwarding
- GraphDiffer: classified discrepancies between both graphs
"""
