from __future__ import annotations

import logging
from dataclasses import dataclass

from allme.domain.entities.plan import Plan
from allme.domain.errors import ValidationError
from allme.infrastructure.database.rpc_client import SupabaseRpc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromoResult:
    success: bool
    plan: Plan | None = None
    error: str | None = None


@dataclass
class RedeemPromoUseCase:
    rpc: SupabaseRpc

    def execute(self, user_id: str, code: str) -> PromoResult:
        """Redeem ``code`` for ``user_id``.

        Backend failures are reported as an unsuccessful result, never raised.

        Raises:
            ValidationError: If the code is blank.
        """
        code = (code or "").strip().upper()
        if not code:
            raise ValidationError("Promo code required")
        try:
            data = self.rpc.redeem_promo_code(code, user_id)
        except Exception as exc:
            logger.error("Promo RPC failed: %s", exc)
            return PromoResult(success=False, error="Failed to redeem code. Please try again.")

        if not data.get("success"):
            return PromoResult(success=False, error=data.get("error") or "Invalid code")
        return PromoResult(success=True, plan=Plan.parse(data.get("plan")))
