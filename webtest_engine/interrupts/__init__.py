"""Wallet popup detection, classification and resolution."""

from .classifier import PatternPopupClassifier, PopupClassifier
from .handler import InterruptHandler
from .types import NO_POPUP, InterruptResult, PopupClassification, PopupKind

__all__ = [
    "InterruptHandler",
    "InterruptResult",
    "NO_POPUP",
    "PatternPopupClassifier",
    "PopupClassification",
    "PopupClassifier",
    "PopupKind",
]
