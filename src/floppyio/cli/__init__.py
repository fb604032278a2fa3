"""
FloppyIO Command-Line Interface
===============================

This package provides the **fpio** command-line tool, a Click-based front
end that streams data through a FloppyIO channel from either side.
"""

__all__ = ["fpio"]
