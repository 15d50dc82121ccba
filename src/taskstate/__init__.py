"""taskstate: crash-tolerant, multi-process-safe task record storage."""

__version__ = "0.1.0"
