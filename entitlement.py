"""Payment-reference entitlement checks against Stripe checkout sessions."""

from __future__ import annotations

import os
import sys
from typing import Any, Dict, Optional

import httpx

from errors import EntitlementError
from observability import setup_structured_logger
from schemas import Entitlement

STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com")
PRO_MIN_AMOUNT_CENTS = int(os.getenv("PRO_MIN_AMOUNT_CENTS", "1500"))
ENTITLEMENT_TIMEOUT_SECONDS = float(os.getenv("ENTITLEMENT_TIMEOUT_SECONDS", "10"))

logger = setup_structured_logger("brosplit.entitlement")


def entitlement_from_session(session: Dict[str, Any], pro_min_amount: int = PRO_MIN_AMOUNT_CENTS) -> Entitlement:
    """Map a checkout session object to an entitlement.

    The tier comes from ``metadata.tier`` when it is "base" or "pro",
    otherwise from the amount paid.
    """
    if session.get("payment_status") != "paid":
        return Entitlement(paid=False, tier=None)

    metadata = session.get("metadata") or {}
    tier = str(metadata.get("tier", "")).strip().lower() if isinstance(metadata, dict) else ""
    if tier not in ("base", "pro"):
        amount = session.get("amount_total")
        tier = "pro" if isinstance(amount, int) and amount >= pro_min_amount else "base"
    return Entitlement(paid=True, tier=tier)


class StripeEntitlementVerifier:
    """Looks up checkout sessions over the Stripe REST API.

    A new httpx client is opened per lookup; ``transport`` lets tests plug in
    an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_base: str = STRIPE_API_BASE,
        timeout: float = ENTITLEMENT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key if secret_key is not None else os.getenv("STRIPE_SECRET_KEY", "")
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    def verify(self, session_ref: Optional[str]) -> Entitlement:
        """Return the entitlement granted by a checkout session id.

        Raises:
            EntitlementError: Missing/unknown reference, or Stripe unreachable
        """
        if not session_ref or not session_ref.strip():
            raise EntitlementError("A payment reference (sessionId) is required")
        if not self.configured:
            raise EntitlementError(
                "Payment verification is not configured", kind="entitlement_unavailable"
            )

        url = f"{self.api_base}/v1/checkout/sessions/{session_ref.strip()}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(url, auth=(self.secret_key, ""))
        except httpx.HTTPError as exc:
            print(f"   ⚠️  Stripe lookup failed: {exc}", file=sys.stderr)
            logger.error(
                "Stripe lookup failed",
                extra={"extra_fields": {"error": str(exc), "error_type": type(exc).__name__}},
            )
            raise EntitlementError(
                "Payment provider unavailable", kind="entitlement_unavailable"
            ) from exc

        if response.status_code == 404:
            raise EntitlementError("Unknown payment reference")
        if response.status_code >= 400:
            logger.error(
                "Stripe returned an error",
                extra={"extra_fields": {"status_code": response.status_code}},
            )
            raise EntitlementError(
                f"Payment provider error (HTTP {response.status_code})",
                kind="entitlement_unavailable",
            )

        try:
            session = response.json()
        except ValueError as exc:
            raise EntitlementError(
                "Payment provider returned an invalid response", kind="entitlement_unavailable"
            ) from exc

        entitlement = entitlement_from_session(session if isinstance(session, dict) else {})
        logger.info(
            "Entitlement verified",
            extra={"extra_fields": {"paid": entitlement.paid, "tier": entitlement.tier}},
        )
        return entitlement
