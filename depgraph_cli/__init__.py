"""depgraph-cli: monorepo dependency graphs and change impact queries."""

__version__ = "0.1.0"
