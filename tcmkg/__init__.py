"""tcmkg: analytics engine for typed entity/relation knowledge graphs."""

__version__ = "0.1.0"
