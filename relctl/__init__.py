"""relctl: dependency-aware contract release orchestrator."""

__version__ = "0.1.0"
