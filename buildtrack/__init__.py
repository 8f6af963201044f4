# Rev 0.2.0
"""buildtrack: hierarchical weighted progress tracking for construction projects."""

__version__ = "0.2.0"
