"""NewsRelay: daily tech news digest with AI curation and Discord delivery."""

__version__ = "0.1.0"
