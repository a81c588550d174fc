# exceptions/
# ├── __init__.py
# ├── base.py                    # Domain errors (NotFoundError, ConflictError, ...)
# ├── integrity_classifier.py    # Store-specific integrity error classification
# └── mapper.py                  # Store errors -> domain errors, store_error_handler

from .base import (
    AppError,
    NotFoundError,
    ConflictError,
    ValidationFailure,
    StoreFailure,
)
from .integrity_classifier import UniqueConstraintError
from .mapper import store_error_handler

__all__ = [
    "AppError",
    "NotFoundError",
    "ConflictError",
    "ValidationFailure",
    "StoreFailure",
    "UniqueConstraintError",
    "store_error_handler",
]
