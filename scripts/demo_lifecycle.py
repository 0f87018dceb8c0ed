# scripts/demo_lifecycle.py
from __future__ import annotations

import logging

from insured_templates import InMemoryGovernance, TemplateRegistry
from insured_templates.config import load_pricing_config, load_validation_rules
from insured_templates.pricing.params import (
    BooleanParam,
    BooleanValue,
    ChoiceParam,
    ChoiceValue,
    choice_label,
    describe_value,
)
from insured_templates.pricing.templates import CoverageType, PremiumModel, ProductCategory, RiskLevel

ADMIN = "admin"
COUNCIL = "council"
INSURER = "insurer"
HOLDER = "holder-001"


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    governance = InMemoryGovernance()
    registry = TemplateRegistry(
        admin=ADMIN,
        governance=governance,
        rules=load_validation_rules(),
        pricing=load_pricing_config(),
        governance_participants=[COUNCIL],
    )

    region = ChoiceParam("region", options=("inland", "coastal"), default_index=0)
    template_id = registry.create_template(
        INSURER,
        name="Crop Drought Cover",
        description="Seasonal drought protection for small farms",
        category=ProductCategory.AGRICULTURE,
        risk_level=RiskLevel.HIGH,
        premium_model=PremiumModel.RISK_BASED,
        coverage_type=CoverageType.PARTIAL,
        min_coverage=50_000,
        max_coverage=5_000_000,
        min_duration_days=90,
        max_duration_days=180,
        base_premium_rate_bps=300,
        min_deductible=0,
        max_deductible=25_000,
        collateral_ratio_bps=2000,
        custom_params=(BooleanParam("additional_coverage", default=False), region),
    )

    registry.submit_template_for_review(INSURER, template_id)
    proposal_id = registry.propose_template_approval(
        COUNCIL, template_id, "List drought cover", "Priced for the coming season", 66
    )
    print("=== Approval status (voting) ===")
    print(registry.get_template_approval_status(template_id))

    governance.decide(proposal_id, passed=True)
    registry.execute_template_approval(COUNCIL, proposal_id, template_id)
    registry.deploy_template(ADMIN, template_id)

    values = [BooleanValue("additional_coverage", True), ChoiceValue("region", 1)]
    quote = registry.quote_premium(template_id, 1_000_000, 120, 5_000, values)
    print("\n=== Quote ===")
    print("premium:", quote.premium)
    print("collateral:", quote.required_collateral)
    print("breakdown:", quote.breakdown)

    policy_id = registry.create_policy_from_template(HOLDER, template_id, 1_000_000, 120, 5_000, values)
    policy = registry.get_template_policy(policy_id)
    print("\n=== Policy ===")
    print("id:", policy.policy_id, "template:", policy.template_id, "version:", policy.template_version)
    print("premium:", policy.premium_amount, "collateral:", policy.required_collateral)
    print("term:", policy.start_time, "->", policy.end_time)
    for value in policy.custom_values:
        shown = choice_label(region, value) if value.name == region.name else describe_value(value)
        print(f"  {value.name}: {shown}")

    print("\n=== Registry ===")
    print("templates:", registry.get_template_count(), "policies:", registry.get_template_policy_count())
    print("active:", [t.name for t in registry.get_active_templates()])


if __name__ == "__main__":
    main()
