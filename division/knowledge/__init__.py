"""Catalog of roles, providers and bindings, plus task-log storage."""

from division.knowledge.catalog import (
    Catalog,
    CatalogSnapshot,
    InMemoryCatalog,
    RoleAssignment,
    TaskLogEntry,
    TaskLogStore,
    load_catalog,
)
from division.knowledge.seed import DEMO_PROJECT_ID, default_snapshot

__all__ = [
    "DEMO_PROJECT_ID",
    "Catalog",
    "CatalogSnapshot",
    "InMemoryCatalog",
    "RoleAssignment",
    "TaskLogEntry",
    "TaskLogStore",
    "default_snapshot",
    "load_catalog",
]
