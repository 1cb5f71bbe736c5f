from docrev.db.base import Base
from .document import DocumentRecord

__all__ = [
    "Base",
    "DocumentRecord",
]
