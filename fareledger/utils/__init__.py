"""
Utilities package for the fare ledger client.

Exports shared logging helpers. Keep this package lightweight and free of
domain-specific logic.
"""

from fareledger.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
