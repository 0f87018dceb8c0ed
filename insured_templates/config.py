# insured_templates/config.py
"""
Process-wide configuration.

TemplateValidationRules bound every template; PricingConfig holds the
deployment-supplied tables the RiskBased and Tiered models read. Both are
checked for internal consistency once, when the registry is built, and are
immutable afterwards.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from insured_templates.common.validation import MAX_BPS, MIN_VOTING_THRESHOLD_PCT
from insured_templates.errors import TemplateValidationFailed
from insured_templates.pricing.templates import RISK_ORDER, RiskLevel


class TemplateValidationRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_collateral_ratio_bps: int = Field(default=1000, ge=0)
    max_premium_rate_bps: int = Field(default=5000, ge=0)
    min_duration_days: int = Field(default=1, ge=0)
    max_duration_days: int = Field(default=365, ge=0)
    approval_threshold_bps: int = Field(default=5100, ge=0)
    min_update_interval: int = Field(default=86400, ge=0)  # seconds

    def violations(self) -> List[str]:
        out: List[str] = []
        for field in ("min_collateral_ratio_bps", "max_premium_rate_bps", "approval_threshold_bps"):
            if getattr(self, field) > MAX_BPS:
                out.append(f"{field} exceeds {MAX_BPS} bps")
        if self.min_duration_days < 1:
            out.append("min_duration_days must be at least 1")
        if self.min_duration_days > self.max_duration_days:
            out.append("min_duration_days greater than max_duration_days")
        if self.approval_threshold_bps <= MIN_VOTING_THRESHOLD_PCT * 100:
            out.append("approval_threshold_bps must exceed a simple majority")
        return out

    def ensure_consistent(self) -> "TemplateValidationRules":
        problems = self.violations()
        if problems:
            raise TemplateValidationFailed(problems)
        return self


class PricingTier(BaseModel):
    """Coverage bracket starting at `threshold` (inclusive)."""
    model_config = ConfigDict(frozen=True)

    threshold: int = Field(ge=0)
    multiplier_bps: int = Field(gt=0)


DEFAULT_RISK_MULTIPLIERS_BPS: Dict[RiskLevel, int] = {
    RiskLevel.LOW: 8000,
    RiskLevel.MEDIUM: 10000,
    RiskLevel.HIGH: 15000,
    RiskLevel.VERY_HIGH: 25000,
}

DEFAULT_TIERS: Tuple[PricingTier, ...] = (
    PricingTier(threshold=0, multiplier_bps=10000),
    PricingTier(threshold=100_000_001, multiplier_bps=9000),
    PricingTier(threshold=1_000_000_001, multiplier_bps=8000),
)

DEFAULT_PARAM_ADJUSTMENTS_BPS: Dict[str, int] = {
    "additional_coverage": 12000,  # +20%
    "high_deductible": 8000,       # -20%
}


class PricingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_multipliers_bps: Dict[RiskLevel, int] = Field(
        default_factory=lambda: dict(DEFAULT_RISK_MULTIPLIERS_BPS)
    )
    tiers: Tuple[PricingTier, ...] = DEFAULT_TIERS
    param_adjustments_bps: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_PARAM_ADJUSTMENTS_BPS)
    )
    fixed_premium_scale: int = Field(default=1, ge=1)

    def violations(self) -> List[str]:
        out: List[str] = []

        missing = [lvl.value for lvl in RISK_ORDER if lvl not in self.risk_multipliers_bps]
        if missing:
            out.append(f"risk_multipliers_bps missing: {', '.join(missing)}")
        else:
            ladder = [self.risk_multipliers_bps[lvl] for lvl in RISK_ORDER]
            if any(m <= 0 for m in ladder):
                out.append("risk multipliers must be positive")
            if any(a >= b for a, b in zip(ladder, ladder[1:])):
                out.append("risk multipliers must increase with risk level")

        if not self.tiers:
            out.append("at least one pricing tier is required")
        else:
            if self.tiers[0].threshold != 0:
                out.append("first pricing tier must start at 0")
            thresholds = [t.threshold for t in self.tiers]
            if any(a >= b for a, b in zip(thresholds, thresholds[1:])):
                out.append("tier thresholds must be strictly ascending")

        for name, mult in self.param_adjustments_bps.items():
            if mult <= 0:
                out.append(f"adjustment for {name!r} must be positive")
        return out

    def ensure_consistent(self) -> "PricingConfig":
        problems = self.violations()
        if problems:
            raise TemplateValidationFailed(problems)
        return self

    def risk_multiplier(self, level: RiskLevel) -> int:
        return self.risk_multipliers_bps[level]

    def tier_for(self, coverage_amount: int) -> PricingTier:
        chosen = self.tiers[0]
        for tier in self.tiers:
            if coverage_amount >= tier.threshold:
                chosen = tier
            else:
                break
        return chosen


# =========================
# Environment loading
# =========================

_RULE_ENV = {
    "min_collateral_ratio_bps": "TEMPLATE_MIN_COLLATERAL_RATIO_BPS",
    "max_premium_rate_bps": "TEMPLATE_MAX_PREMIUM_RATE_BPS",
    "min_duration_days": "TEMPLATE_MIN_DURATION_DAYS",
    "max_duration_days": "TEMPLATE_MAX_DURATION_DAYS",
    "approval_threshold_bps": "TEMPLATE_APPROVAL_THRESHOLD_BPS",
    "min_update_interval": "TEMPLATE_MIN_UPDATE_INTERVAL",
}


def load_validation_rules(env_file: Optional[Union[str, Path]] = None) -> TemplateValidationRules:
    """Defaults overridden by TEMPLATE_* variables (from the environment or a .env file)."""
    load_dotenv(env_file)

    overrides: Dict[str, int] = {}
    for field, env_name in _RULE_ENV.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        overrides[field] = int(raw)
    return TemplateValidationRules(**overrides)


def load_pricing_config(path: Optional[Union[str, Path]] = None) -> PricingConfig:
    """Read PricingConfig from a JSON file (argument or PRICING_CONFIG_PATH); defaults otherwise."""
    load_dotenv()

    raw_path = path or os.getenv("PRICING_CONFIG_PATH")
    if not raw_path:
        return PricingConfig()

    config_path = Path(raw_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Missing pricing config: {config_path}")

    payload = json.loads(config_path.read_text(encoding="utf-8"))
    return PricingConfig.model_validate(payload)
