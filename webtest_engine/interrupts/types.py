from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PopupKind(str, Enum):
    """Purpose of a side-channel popup."""

    SIGNATURE = "signature"
    TRANSACTION = "transaction"
    CONNECT = "connect"
    UNKNOWN = "unknown"
    ERROR = "error"


@dataclass(frozen=True)
class PopupClassification:
    """Classifier verdict for one popup occurrence."""

    kind: PopupKind
    subtype: Optional[str] = None
    error_kind: Optional[str] = None
    error_text: Optional[str] = None
    excerpt: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return self.kind is PopupKind.ERROR or self.error_kind is not None


@dataclass(frozen=True)
class InterruptResult:
    """What the interrupt handler saw and did after one step."""

    has_popup: bool
    kind: Optional[PopupKind] = None
    subtype: Optional[str] = None
    action: Optional[str] = None
    success: Optional[bool] = None
    test_failed: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None
    selector: Optional[str] = None

    @property
    def unresolved(self) -> bool:
        return self.has_popup and not self.success

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"hasPopup": self.has_popup}
        if not self.has_popup:
            return payload
        payload.update(
            {
                "kind": self.kind.value if self.kind else None,
                "action": self.action,
                "success": self.success,
                "testFailed": self.test_failed,
            }
        )
        optional = {
            "subtype": self.subtype,
            "error": self.error,
            "errorKind": self.error_kind,
            "selector": self.selector,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


NO_POPUP = InterruptResult(has_popup=False)


__all__ = ["InterruptResult", "NO_POPUP", "PopupClassification", "PopupKind"]
