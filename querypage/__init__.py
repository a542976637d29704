"""querypage: declarative offset and keyset pagination for SQLAlchemy."""

__version__ = "0.1.0"
