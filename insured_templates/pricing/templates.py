# insured_templates/pricing/templates.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Type, TypeVar

from insured_templates.errors import InvalidInput
from insured_templates.pricing.params import CustomParam, ParamValue


class ProductCategory(str, Enum):
    PROPERTY = "property"
    AUTO = "auto"
    HEALTH = "health"
    LIFE = "life"
    TRAVEL = "travel"
    AGRICULTURE = "agriculture"
    CYBER = "cyber"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


# Ascending risk; pricing multipliers must follow this order
RISK_ORDER: Tuple[RiskLevel, ...] = (
    RiskLevel.LOW,
    RiskLevel.MEDIUM,
    RiskLevel.HIGH,
    RiskLevel.VERY_HIGH,
)


class PremiumModel(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    RISK_BASED = "risk_based"
    TIERED = "tiered"


class CoverageType(str, Enum):
    BASIC = "basic"
    PARTIAL = "partial"
    FULL = "full"
    COMPREHENSIVE = "comprehensive"


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    ARCHIVED = "archived"


E = TypeVar("E", bound=Enum)


def coerce_enum(value: Any, enum_cls: Type[E], what: str) -> E:
    """Accept a member or its raw value; anything else is outside the closed set."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInput(f"{what}={value!r} not one of: {allowed}") from None


@dataclass(frozen=True)
class ProductTemplate:
    id: int
    name: str
    description: str

    category: ProductCategory
    risk_level: RiskLevel
    premium_model: PremiumModel
    coverage_type: CoverageType
    status: TemplateStatus

    # Ranges (minor units / days)
    min_coverage: int
    max_coverage: int
    min_duration_days: int
    max_duration_days: int
    min_deductible: int
    max_deductible: int

    # Pricing knobs (basis points)
    base_premium_rate_bps: int
    collateral_ratio_bps: int

    custom_params: Tuple[CustomParam, ...]

    creator: str
    created_at: int
    updated_at: int
    version: int = 1


@dataclass(frozen=True)
class TemplatePolicy:
    policy_id: int
    template_id: int
    template_version: int
    holder: str

    coverage_amount: int
    duration_days: int
    deductible: int
    custom_values: Tuple[ParamValue, ...]

    premium_amount: int
    required_collateral: int

    created_at: int
    start_time: int
    end_time: int
