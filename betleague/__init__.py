"""Season-long prediction league: bet evaluation engine and data model."""

__version__ = "0.1.0"
