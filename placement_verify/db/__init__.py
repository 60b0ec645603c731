"""
Database module - organization repository and identity stores.
"""
from placement_verify.db.memory_store import InMemoryIdentityStore
from placement_verify.db.repository import OrganizationRepository
from placement_verify.db.sql_store import SqlIdentityStore

__all__ = [
    "InMemoryIdentityStore",
    "OrganizationRepository",
    "SqlIdentityStore",
]
