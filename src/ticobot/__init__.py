"""TicoBot: retrieval-augmented chat over Costa Rica's 2026 government plans."""

__version__ = "0.1.0"
