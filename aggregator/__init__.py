"""
Aggregation service: cached, best-effort fan-out over peer services.
"""

__version__ = "1.0.0"
