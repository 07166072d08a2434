"""dumpvec: embed database dump rows into vector databases."""

__version__ = "0.1.0"
