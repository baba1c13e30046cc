"""Bar line, bracket and brace candidates from staff projections."""

__version__ = "0.1.0"
