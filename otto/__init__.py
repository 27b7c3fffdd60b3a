"""Otto — a small monitoring agent that runs scheduled probes and fans out alerts."""

__version__ = "0.1.0"
