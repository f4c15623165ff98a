"""carp — local parachain dev stack bootstrapper and supervisor."""

__version__ = "0.1.0"
