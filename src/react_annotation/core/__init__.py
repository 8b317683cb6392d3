"""Core interfaces and models for render annotation analysis.

Fundamental building blocks including:
- Declaration arena, graph edges and discrepancy models
- Abstract source unit and component resolver interfaces
- Configuration, cancellation and the exception hierarchy
"""
