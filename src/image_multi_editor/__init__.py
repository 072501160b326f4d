"""
Concurrent multi-instruction image editing on top of the Gemini image model.
"""
from .config import load_config
from .session import EditorSession
from .tasks.dispatcher import RequestDispatcher
from .tasks.reconciler import ResultReconciler

__all__ = ["load_config", "EditorSession", "RequestDispatcher", "ResultReconciler"]
