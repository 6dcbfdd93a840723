"""cyx - security tooling assistant with a local semantic query cache."""

__version__ = "0.4.0"
