"""chectl - Eclipse Che cluster lifecycle orchestrator."""

__version__ = "0.1.0"
