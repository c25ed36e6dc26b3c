"""wikiblocks - a wiki document tree with macro transformation and syntax escaping."""

__version__ = "0.1.0"
