"""Before/after competitor-event analysis of a store's POS transactions."""

__version__ = "0.1.0"
