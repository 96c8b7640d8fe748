"""BandHub band membership governance service."""

__version__ = "0.1.0"
