"""rigcheck - PC build compatibility rule engine."""

__version__ = "0.3.0"
