"""Chain liveness monitor publishing status to Discord."""

__version__ = "0.1.0"
