"""connwatch - scheduled connectivity health checks for databases and APIs."""

__version__ = "0.1.0"
