"""turfdesk: race and results admin backend with Casa Courses programme sync."""

__version__ = "0.1.0"
