"""evidence-rewrite: evidence-anchored resume rewriting."""

__version__ = "0.1.0"
