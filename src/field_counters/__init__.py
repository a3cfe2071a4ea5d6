"""Field value counters: count distinct values at dotted field paths."""

__version__ = "0.1.0"
