"""lunner - database-arbitrated leader election with role-change hooks."""

__version__ = "0.3.0"
