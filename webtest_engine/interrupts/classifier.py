from __future__ import annotations

from typing import Iterable, Optional, Protocol

from . import patterns
from .types import PopupClassification, PopupKind

EXCERPT_CHARS = 500


class PopupClassifier(Protocol):
    """Anything that can turn popup text and markup into a classification."""

    def classify(self, text: str, html: str = "") -> PopupClassification:
        ...


class PatternPopupClassifier:
    """Keyword classifier over visible text and raw markup.

    Precedence is error > signature > transaction > connect > unknown, so an
    errored transaction is never mistaken for something approvable.
    """

    def __init__(
        self,
        *,
        error_indicators: Iterable[tuple[str, str, bool]] = patterns.ERROR_INDICATORS,
        signature_indicators: Iterable[str] = patterns.SIGNATURE_INDICATORS,
        transaction_indicators: Iterable[str] = patterns.TRANSACTION_INDICATORS,
        connect_indicators: Iterable[str] = patterns.CONNECT_INDICATORS,
    ) -> None:
        self.error_indicators = tuple(error_indicators)
        self.signature_indicators = tuple(signature_indicators)
        self.transaction_indicators = tuple(transaction_indicators)
        self.connect_indicators = tuple(connect_indicators)

    def classify(self, text: str, html: str = "") -> PopupClassification:
        text = text or ""
        html = html or ""

        for indicator, error_kind, text_only in self.error_indicators:
            haystacks = (text,) if text_only else (text, html)
            if any(indicator in haystack for haystack in haystacks):
                return PopupClassification(
                    kind=PopupKind.TRANSACTION,
                    error_kind=error_kind,
                    error_text=indicator,
                )

        if self._first_hit(self.signature_indicators, text, html):
            subtype = "personal_sign"
            if any(marker in text for marker in patterns.TYPED_DATA_MARKERS):
                subtype = "signTypedData_v4"
            return PopupClassification(kind=PopupKind.SIGNATURE, subtype=subtype)

        if self._first_hit(self.transaction_indicators, text, html):
            return PopupClassification(kind=PopupKind.TRANSACTION)

        if self._first_hit(self.connect_indicators, text, html):
            return PopupClassification(kind=PopupKind.CONNECT)

        return PopupClassification(kind=PopupKind.UNKNOWN, excerpt=text[:EXCERPT_CHARS])

    @staticmethod
    def _first_hit(indicators: Iterable[str], text: str, html: str) -> Optional[str]:
        for indicator in indicators:
            if indicator in text or indicator in html:
                return indicator
        return None


def unreadable_popup(reason: str) -> PopupClassification:
    """Classification used when the popup content could not be read at all."""

    return PopupClassification(kind=PopupKind.ERROR, error_kind="unreadable_popup", error_text=reason)


__all__ = ["PatternPopupClassifier", "PopupClassifier", "unreadable_popup"]
