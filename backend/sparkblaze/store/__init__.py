from .memory import Document, DocumentStore, Transaction, new_id, utcnow

__all__ = ["Document", "DocumentStore", "Transaction", "new_id", "utcnow"]
