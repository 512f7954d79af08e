"""CLI layer: the builder's argument parsing and error boundary.

This package is the outermost layer.  It may import from ``compiler``
and ``runtime``, but no other layer may import from ``cli``.
"""
