# herbal_ledger/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All ledger collections (sources, drugs, stock, prescriptions) inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from herbal_ledger.models import (  # noqa: F401,E402
    inventory,
    prescription,
)
