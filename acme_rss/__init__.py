"""acme-rss: a feed reader living in an acme window."""

__version__ = "0.1.0"
