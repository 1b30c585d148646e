"""importprune: find and safely remove unused JS/TS imports and exports."""

__version__ = "0.3.0"
