"""Infrastructure connections (PostgreSQL)."""

from lunner.infra.pg_leader import SQLAlchemyClaimStore
from lunner.infra.postgresql import create_election_engine

__all__ = [
    "SQLAlchemyClaimStore",
    "create_election_engine",
]
