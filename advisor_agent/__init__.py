"""Tool-execution and structured-output core for the advisor assistant."""

__version__ = "0.1.0"
