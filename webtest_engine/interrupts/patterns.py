"""Text indicators and button selectors for wallet-extension popups.

Order matters: classification walks error indicators first, then signature,
transaction and connect indicators.
"""

from __future__ import annotations

from typing import Dict, Tuple

# (indicator, error kind, visible-text only)
ERROR_INDICATORS: Tuple[Tuple[str, str, bool], ...] = (
    ("Insufficient funds", "insufficient_funds", False),
    ("insufficient funds", "insufficient_funds", False),
    ("not enough", "insufficient_funds", False),
    ("gas required exceeds", "gas_estimation_failed", False),
    ("cannot estimate gas", "gas_estimation_failed", False),
    ("execution reverted", "execution_reverted", False),
    ("Error", "generic_error", True),
)

SIGNATURE_INDICATORS: Tuple[str, ...] = (
    "Signature request",
    "Sign message",
    "personal_sign",
    "Sign typed data",
    "signTypedData",
    "eth_signTypedData",
    "Message:",
    "Sign this message",
)

TYPED_DATA_MARKERS: Tuple[str, ...] = ("signTypedData", "typed data")

TRANSACTION_INDICATORS: Tuple[str, ...] = (
    "Gas fee",
    "Estimated gas",
    "Max fee",
    "Total",
    "Amount",
    "Send",
    "Confirm transaction",
    "Contract interaction",
)

CONNECT_INDICATORS: Tuple[str, ...] = (
    "Connect with MetaMask",
    "Connect to this site",
    "Connect request",
)

SIGNATURE_APPROVE_BUTTONS: Tuple[str, ...] = (
    'button[data-testid="confirm-footer-button"]',
    'button[data-testid="signature-request-scroll-button"]',
    'button:has-text("Sign")',
    'button:has-text("Confirm")',
)

TRANSACTION_APPROVE_BUTTONS: Tuple[str, ...] = (
    'button[data-testid="confirm-footer-button"]',
    'button[data-testid="page-container-footer-next"]',
    'button:has-text("Confirm")',
    'button:has-text("Approve")',
)

CONNECT_APPROVE_BUTTONS: Tuple[str, ...] = (
    'button[data-testid="confirm-btn"]',
    'button:has-text("Connect")',
)

REJECT_BUTTONS: Tuple[str, ...] = (
    'button[data-testid="confirm-footer-cancel-button"]',
    'button[data-testid="page-container-footer-cancel"]',
    'button:has-text("Reject")',
    'button:has-text("Cancel")',
)

APPROVE_BUTTONS: Dict[str, Tuple[str, ...]] = {
    "signature": SIGNATURE_APPROVE_BUTTONS,
    "transaction": TRANSACTION_APPROVE_BUTTONS,
    "connect": CONNECT_APPROVE_BUTTONS,
}

EXTENSION_SCHEME = "chrome-extension://"
NOTIFICATION_PATH = "notification.html"


__all__ = [
    "APPROVE_BUTTONS",
    "CONNECT_APPROVE_BUTTONS",
    "CONNECT_INDICATORS",
    "ERROR_INDICATORS",
    "EXTENSION_SCHEME",
    "NOTIFICATION_PATH",
    "REJECT_BUTTONS",
    "SIGNATURE_APPROVE_BUTTONS",
    "SIGNATURE_INDICATORS",
    "TRANSACTION_APPROVE_BUTTONS",
    "TRANSACTION_INDICATORS",
    "TYPED_DATA_MARKERS",
]
