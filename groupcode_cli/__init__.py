"""GroupCode CLI: cross-file code grouping through ``@group`` comments."""

__version__ = "1.0.0"
