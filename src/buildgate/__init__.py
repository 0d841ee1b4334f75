"""buildgate — staged build, test-gate, and launch pipeline."""

__version__ = "0.1.0"
