# insured_templates/pricing/engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from insured_templates.common.validation import (
    BPS_DENOMINATOR,
    DAYS_PER_YEAR,
    calculate_basis_points,
    safe_div,
    safe_mul,
    validate_basis_points,
    validate_positive_amount,
    validate_u32,
)
from insured_templates.config import PricingConfig
from insured_templates.errors import InvalidInput
from insured_templates.pricing.params import BooleanValue, ParamValue
from insured_templates.pricing.templates import PremiumModel, ProductTemplate, RiskLevel

# coverage * rate(bps) * days, pro-rated over a year
PERCENTAGE_DENOMINATOR = BPS_DENOMINATOR * DAYS_PER_YEAR


@dataclass
class Quote:
    premium: int
    required_collateral: int
    breakdown: Dict[str, int] = field(default_factory=dict)


def _check_term(coverage_amount: int, duration_days: int) -> None:
    validate_positive_amount(coverage_amount, "coverage_amount")
    if validate_u32(duration_days, "duration_days") == 0:
        raise InvalidInput("duration_days must be positive")


def fixed_premium(base_premium_rate_bps: int, scale: int = 1) -> int:
    """The rate is the premium itself, in minor units; term-independent."""
    return safe_mul(base_premium_rate_bps, scale)


def percentage_premium(coverage_amount: int, base_premium_rate_bps: int, duration_days: int) -> int:
    """
    coverage * rate / 10_000 * days / 365, every product formed before the
    single floor division so nothing is truncated early.
    """
    _check_term(coverage_amount, duration_days)
    product = safe_mul(safe_mul(coverage_amount, base_premium_rate_bps), duration_days)
    return safe_div(product, PERCENTAGE_DENOMINATOR)


def _scaled_percentage(coverage_amount: int, rate_bps: int, duration_days: int, multiplier_bps: int) -> int:
    product = safe_mul(safe_mul(safe_mul(coverage_amount, rate_bps), duration_days), multiplier_bps)
    return safe_div(product, safe_mul(PERCENTAGE_DENOMINATOR, BPS_DENOMINATOR))


def risk_based_premium(
    coverage_amount: int,
    base_premium_rate_bps: int,
    duration_days: int,
    risk_level: RiskLevel,
    config: PricingConfig,
) -> int:
    _check_term(coverage_amount, duration_days)
    return _scaled_percentage(
        coverage_amount, base_premium_rate_bps, duration_days, config.risk_multiplier(risk_level)
    )


def tiered_premium(
    coverage_amount: int,
    base_premium_rate_bps: int,
    duration_days: int,
    config: PricingConfig,
) -> int:
    _check_term(coverage_amount, duration_days)
    tier = config.tier_for(coverage_amount)
    return _scaled_percentage(coverage_amount, base_premium_rate_bps, duration_days, tier.multiplier_bps)


def model_premium(
    template: ProductTemplate,
    coverage_amount: int,
    duration_days: int,
    config: PricingConfig,
) -> int:
    _check_term(coverage_amount, duration_days)
    model = template.premium_model
    rate = validate_basis_points(template.base_premium_rate_bps, "base_premium_rate_bps")

    if model is PremiumModel.FIXED:
        return fixed_premium(rate, config.fixed_premium_scale)
    if model is PremiumModel.PERCENTAGE:
        return percentage_premium(coverage_amount, rate, duration_days)
    if model is PremiumModel.RISK_BASED:
        return risk_based_premium(coverage_amount, rate, duration_days, template.risk_level, config)
    if model is PremiumModel.TIERED:
        return tiered_premium(coverage_amount, rate, duration_days, config)
    raise InvalidInput(f"unsupported premium model {model!r}")


def apply_param_adjustments(
    premium: int,
    resolved: Mapping[str, ParamValue],
    config: PricingConfig,
) -> int:
    """Boolean options switched on scale the premium by their configured multiplier."""
    for name, value in resolved.items():
        mult = config.param_adjustments_bps.get(name)
        if mult is None or not isinstance(value, BooleanValue) or not value.value:
            continue
        premium = safe_div(safe_mul(premium, mult), BPS_DENOMINATOR)
    return premium


def compute_collateral(coverage_amount: int, collateral_ratio_bps: int) -> int:
    validate_positive_amount(coverage_amount, "coverage_amount")
    return calculate_basis_points(coverage_amount, collateral_ratio_bps)


def compute_quote(
    template: ProductTemplate,
    coverage_amount: int,
    duration_days: int,
    resolved: Mapping[str, ParamValue],
    config: PricingConfig,
) -> Quote:
    """
    Premium and collateral for one policy:
      base = model premium (Fixed / Percentage / RiskBased / Tiered)
      premium = base adjusted by switched-on boolean options
      collateral = coverage * collateral_ratio / 10_000
    """
    base = model_premium(template, coverage_amount, duration_days, config)
    premium = apply_param_adjustments(base, resolved, config)
    collateral = compute_collateral(coverage_amount, template.collateral_ratio_bps)

    breakdown = {
        "coverage_amount": coverage_amount,
        "duration_days": duration_days,
        "base_premium_rate_bps": template.base_premium_rate_bps,
        "model_premium": base,
        "adjusted_premium": premium,
        "collateral_ratio_bps": template.collateral_ratio_bps,
    }
    if template.premium_model is PremiumModel.RISK_BASED:
        breakdown["risk_multiplier_bps"] = config.risk_multiplier(template.risk_level)
    elif template.premium_model is PremiumModel.TIERED:
        breakdown["tier_multiplier_bps"] = config.tier_for(coverage_amount).multiplier_bps

    return Quote(premium=premium, required_collateral=collateral, breakdown=breakdown)
