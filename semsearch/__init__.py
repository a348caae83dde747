"""semsearch: vector similarity search with indexed and brute-force paths."""

__version__ = "0.1.0"
