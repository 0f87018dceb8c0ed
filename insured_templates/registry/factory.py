# insured_templates/registry/factory.py
from __future__ import annotations

import logging
from typing import Iterable, Tuple

from insured_templates.common.clock import Clock
from insured_templates.common.validation import (
    SECONDS_PER_DAY,
    safe_add,
    safe_mul,
    validate_in_bounds,
)
from insured_templates.config import PricingConfig
from insured_templates.pricing.engine import Quote, compute_quote
from insured_templates.pricing.params import ParamValue, resolve_custom_values
from insured_templates.pricing.templates import ProductTemplate, TemplatePolicy, TemplateStatus
from insured_templates.registry.access import validate_identity
from insured_templates.registry.lifecycle import require_status
from insured_templates.registry.store import PolicyStore, TemplateStore

logger = logging.getLogger(__name__)


class PolicyFactory:
    """
    Stamps individual policies out of Active templates.

    Every check and every computation runs before the single write to the
    policy store, so a failure leaves no trace (not even a consumed id).
    """

    def __init__(self, templates: TemplateStore, policies: PolicyStore, pricing: PricingConfig, clock: Clock):
        self.templates = templates
        self.policies = policies
        self.pricing = pricing
        self.clock = clock

    def _priced(
        self,
        template_id: int,
        coverage_amount: int,
        duration_days: int,
        deductible: int,
        custom_values: Iterable[ParamValue],
    ) -> Tuple[ProductTemplate, Tuple[ParamValue, ...], Quote]:
        template = self.templates.get(template_id)
        require_status(template.status, TemplateStatus.ACTIVE)

        validate_in_bounds(coverage_amount, template.min_coverage, template.max_coverage, "coverage_amount")
        validate_in_bounds(duration_days, template.min_duration_days, template.max_duration_days, "duration_days")
        validate_in_bounds(deductible, template.min_deductible, template.max_deductible, "deductible")

        resolved = resolve_custom_values(template.custom_params, custom_values)
        quote = compute_quote(template, coverage_amount, duration_days, resolved, self.pricing)
        return template, tuple(resolved.values()), quote

    def quote(
        self,
        template_id: int,
        coverage_amount: int,
        duration_days: int,
        deductible: int,
        custom_values: Iterable[ParamValue] = (),
    ) -> Quote:
        _, _, quote = self._priced(template_id, coverage_amount, duration_days, deductible, custom_values)
        return quote

    def create_policy(
        self,
        holder: str,
        template_id: int,
        coverage_amount: int,
        duration_days: int,
        deductible: int,
        custom_values: Iterable[ParamValue] = (),
    ) -> int:
        self.templates.get(template_id)  # an unknown template is reported first
        validate_identity(holder, "holder")
        template, resolved, quote = self._priced(
            template_id, coverage_amount, duration_days, deductible, custom_values
        )

        now = self.clock.now()
        end_time = safe_add(now, safe_mul(duration_days, SECONDS_PER_DAY))

        policy = TemplatePolicy(
            policy_id=self.policies.next_policy_id(),
            template_id=template.id,
            template_version=template.version,
            holder=holder,
            coverage_amount=coverage_amount,
            duration_days=duration_days,
            deductible=deductible,
            custom_values=resolved,
            premium_amount=quote.premium,
            required_collateral=quote.required_collateral,
            created_at=now,
            start_time=now,
            end_time=end_time,
        )
        self.policies.insert(policy)

        logger.info(
            "policy_issued id=%s template=%s version=%s premium=%s collateral=%s",
            policy.policy_id, template.id, template.version, policy.premium_amount, policy.required_collateral,
        )
        return policy.policy_id
