"""
Commission quotes.

Computes the platform fee for an amount under a ``CommissionSettings`` rule:
type-specific base fee, then the payment-range adjustment, then the
min / max clamp. Results are rounded to cents.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from app.core.exceptions import ValidationError
from app.models import CommissionSettings


@dataclass
class CommissionQuote:
    amount: float
    commission_amount: float
    net_amount: float
    commission_type: str
    effective_rate: float
    tier_name: Optional[str] = None
    settings_id: Optional[int] = None

    def as_dict(self) -> dict:
        return asdict(self)


def _matching_tier(tiers: list[dict], amount: float) -> Optional[dict]:
    for tier in tiers or []:
        lower = tier.get("min_volume") or 0
        upper = tier.get("max_volume")
        if amount >= lower and (upper is None or amount <= upper):
            return tier
    return None


def _range_adjustment(ranges: list[dict], amount: float) -> float:
    for entry in ranges or []:
        lower = entry.get("min_amount") or 0
        upper = entry.get("max_amount")
        if amount >= lower and (upper is None or amount <= upper):
            return float(entry.get("commission_adjustment") or 0)
    return 0.0


def calculate_commission(rule: CommissionSettings, amount: float) -> CommissionQuote:
    if amount is None or amount < 0:
        raise ValidationError("Amount must be a non-negative number")

    rate = float(rule.base_commission_rate or 0)
    flat_fee = float(rule.flat_fee_amount or 0)
    tier_name = None

    if rule.commission_type == "percentage":
        commission = amount * rate / 100
    elif rule.commission_type == "flat_fee":
        commission = flat_fee
    elif rule.commission_type == "tiered":
        tier = _matching_tier(rule.tiers, amount)
        if tier is not None:
            tier_name = tier.get("tier_name")
            commission = amount * float(tier.get("commission_rate") or 0) / 100 + float(tier.get("flat_fee") or 0)
        else:
            commission = amount * rate / 100
    elif rule.commission_type == "hybrid":
        commission = amount * rate / 100 + flat_fee
    else:
        raise ValidationError(f"Unknown commission type: {rule.commission_type}")

    adjustment = _range_adjustment(rule.payment_ranges, amount)
    if adjustment:
        commission += commission * adjustment / 100

    if rule.minimum_commission:
        commission = max(commission, float(rule.minimum_commission))
    if rule.maximum_commission is not None:
        commission = min(commission, float(rule.maximum_commission))

    commission = round(max(commission, 0), 2)
    return CommissionQuote(
        amount=round(amount, 2),
        commission_amount=commission,
        net_amount=round(amount - commission, 2),
        commission_type=rule.commission_type,
        effective_rate=round(commission / amount * 100, 4) if amount else 0.0,
        tier_name=tier_name,
        settings_id=rule.id,
    )
