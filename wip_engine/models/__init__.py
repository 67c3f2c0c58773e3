"""ORM model package."""

from wip_engine.models.entities import (
    Client,
    Employee,
    ServiceLineExternal,
    ServiceLineMaster,
    TransactionType,
    WipTaskBalance,
    WipTransaction,
)

__all__ = [
    "Client",
    "Employee",
    "ServiceLineExternal",
    "ServiceLineMaster",
    "TransactionType",
    "WipTaskBalance",
    "WipTransaction",
]
