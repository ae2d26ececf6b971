# jobs package
from .storage_reconcile import reconcile_storage

__all__ = [
    'reconcile_storage',
]
