"""
tillbook — order lifecycle and billing engine for a POS backend.

    from tillbook import bills as B      # Money/discount calculator, payments
    from tillbook import orders as O     # Aggregate, checkout graph, service
    from tillbook import lifecycle as LC # Order status state machine
    from tillbook import storage as S    # Memory / SQLAlchemy stores
    from tillbook import reports as R    # Sales figures
    from tillbook.wire import create_app # FastAPI boundary
"""

from tillbook import errors
from tillbook import bills
from tillbook import identity
from tillbook import lifecycle
from tillbook import orders
from tillbook import reports
from tillbook import storage
from tillbook import config
from tillbook._types import (
    Result,
    Ok,
    Error,
    Money,
    money,
)

__version__ = "0.1.0"

__all__ = (
    "errors",
    "bills",
    "identity",
    "lifecycle",
    "orders",
    "reports",
    "storage",
    "config",
    "Result",
    "Ok",
    "Error",
    "Money",
    "money",
)
