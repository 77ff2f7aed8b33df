"""HTTP gate server for a chat service, with Redis-backed codes and tokens."""

__version__ = "0.1.0"