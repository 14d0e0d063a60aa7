"""Database utilities and models."""

from monthplan.db.base import Base
from monthplan.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
