"""Diagnostic records and sinks."""
