"""Table rows, coin column encoding, an SQLite validator store and JSON query actions for a blockchain data indexer."""

__version__ = "0.1.0"