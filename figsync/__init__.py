"""Collection import reconciliation and external-lookup dispatch."""

__version__ = "1.0.0"
