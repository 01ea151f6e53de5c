"""Product catalog: reconciliation and read views."""

from .reconciler import ProductReconciler, ReconcileResult, entry_facts
from .views import ProductCatalog, ProductView

__all__ = [
    "ProductCatalog",
    "ProductReconciler",
    "ProductView",
    "ReconcileResult",
    "entry_facts",
]
