"""refgen: reference documentation generator for CLI tool metadata."""

__version__ = "0.1.0"

__all__ = ["__version__"]
