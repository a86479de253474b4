"""Toolpath and G-code analysis, optimization and cost estimation."""

__version__ = "0.1.0"
