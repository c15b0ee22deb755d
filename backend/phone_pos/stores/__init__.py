from .base import (
    CREDIT_PAYMENTS,
    CREDITS,
    ENTITIES,
    PHONES,
    RETURNS,
    SALES,
    ConstraintViolation,
    EntityStore,
    RecordNotFound,
    StoreError,
)
from .memory_store import MemoryEntityStore
from .sql_store import SqlEntityStore

__all__ = [
    'PHONES', 'SALES', 'RETURNS', 'CREDITS', 'CREDIT_PAYMENTS', 'ENTITIES',
    'EntityStore', 'StoreError', 'RecordNotFound', 'ConstraintViolation',
    'MemoryEntityStore', 'SqlEntityStore',
]
