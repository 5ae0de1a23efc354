"""
Storage Module
Append-only question pool and persistence writer
"""
from .content_store import ContentStore, InMemoryContentStore
from .sql_store import SqlContentStore, QuestionBankRow
from .writer import PersistenceWriter, new_item_id

__all__ = [
    "ContentStore",
    "InMemoryContentStore",
    "SqlContentStore",
    "QuestionBankRow",
    "PersistenceWriter",
    "new_item_id",
]
