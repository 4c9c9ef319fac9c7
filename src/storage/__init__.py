"""
Counter persistence.
"""

from .count_sink import CountFileSink

__all__ = ["CountFileSink"]
