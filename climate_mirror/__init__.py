"""Mirror a catalog of remote CSV files into a dated local archive."""

__version__ = "1.0.0"
