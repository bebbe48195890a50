"""practicesync - local-first sync core for practice libraries, sessions and logs."""

__version__ = "0.1.0"
