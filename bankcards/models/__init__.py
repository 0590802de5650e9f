"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. String-based relationship targets ("Card", "Account", ...) resolve
"""

from bankcards.models.user import User, Role, RoleType  # noqa: F401
from bankcards.models.card import Card  # noqa: F401
from bankcards.models.account import Account  # noqa: F401
from bankcards.models.transaction import (  # noqa: F401
    PaymentTransaction,
    TransactionStatus,
    TransactionType,
)
from bankcards.models.refresh_token import RefreshToken  # noqa: F401
from bankcards.models.notification import Notification, EventType  # noqa: F401
