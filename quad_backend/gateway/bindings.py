"""
Capabilities handed to every handler: settings, database and blob store.
Built once in create_app and read-only afterwards.
"""

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from quad_backend.config import Settings
from quad_backend.database.db_connection import Database
from quad_backend.storage.blob_store import BlobStore

EXTENSION_KEY = "quad"


@dataclass(frozen=True)
class Bindings:
    settings: Settings
    database: Database
    storage: Optional[BlobStore] = None


def get_bindings() -> Bindings:
    """
    Return the bindings of the running app.
    Must be called inside an application context.
    """
    return current_app.extensions[EXTENSION_KEY]
