"""
Dispatch and reconciliation of concurrent edit requests.
"""
from .dispatcher import RequestDispatcher
from .edit_plan import EditPlan, load_edit_plan
from .reconciler import ResultReconciler

__all__ = ["RequestDispatcher", "ResultReconciler", "EditPlan", "load_edit_plan"]
