from microcrm.storage.backends import PostgresStorage, SQLiteStorage, storage_class_for_url
from microcrm.storage.base import BillingStorage, SQLStorage

__all__ = [
    "BillingStorage",
    "PostgresStorage",
    "SQLStorage",
    "SQLiteStorage",
    "storage_class_for_url",
]
