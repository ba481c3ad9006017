"""
Order lifecycle and payment reconciliation core for multi-terminal ordering.
"""

__version__ = "0.1.0"
