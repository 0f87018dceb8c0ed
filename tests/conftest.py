"""
Pytest configuration and shared fixtures.
"""
from __future__ import annotations

import os
import sys

import pytest

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from insured_templates.common.clock import ManualClock
from insured_templates.config import TemplateValidationRules
from insured_templates.governance import InMemoryGovernance
from insured_templates.pricing.templates import CoverageType, PremiumModel, ProductCategory, RiskLevel
from insured_templates.registry.service import TemplateRegistry

ADMIN = "admin"
COUNCIL = "council"
CREATOR = "creator"
HOLDER = "holder"

UPDATE_INTERVAL = 3600


def template_kwargs(**overrides):
    """A valid create_template payload; override any field."""
    kwargs = dict(
        name="Home Basic",
        description="Property cover for small homes",
        category=ProductCategory.PROPERTY,
        risk_level=RiskLevel.MEDIUM,
        premium_model=PremiumModel.PERCENTAGE,
        coverage_type=CoverageType.FULL,
        min_coverage=10_000,
        max_coverage=10_000_000_000,
        min_duration_days=30,
        max_duration_days=365,
        base_premium_rate_bps=200,
        min_deductible=0,
        max_deductible=50_000,
        collateral_ratio_bps=1000,
        custom_params=(),
    )
    kwargs.update(overrides)
    return kwargs


@pytest.fixture
def clock():
    return ManualClock(start=1_700_000_000)


@pytest.fixture
def rules():
    return TemplateValidationRules(min_update_interval=UPDATE_INTERVAL)


@pytest.fixture
def governance():
    return InMemoryGovernance()


@pytest.fixture
def registry(clock, rules, governance):
    return TemplateRegistry(
        admin=ADMIN,
        governance=governance,
        rules=rules,
        clock=clock,
        governance_participants=[COUNCIL],
    )


@pytest.fixture
def make_template(registry):
    def _make(creator=CREATOR, **overrides):
        return registry.create_template(creator, **template_kwargs(**overrides))
    return _make


@pytest.fixture
def approve(registry, governance):
    """Drive a Draft template through review to Approved."""
    def _approve(template_id, creator=CREATOR):
        registry.submit_template_for_review(creator, template_id)
        proposal_id = registry.propose_template_approval(
            COUNCIL, template_id, "Approve template", "Ready for market", 60
        )
        governance.decide(proposal_id, passed=True)
        registry.execute_template_approval(COUNCIL, proposal_id, template_id)
        return proposal_id
    return _approve


@pytest.fixture
def make_active_template(make_template, approve, registry):
    def _make(**overrides):
        template_id = make_template(**overrides)
        approve(template_id)
        registry.deploy_template(ADMIN, template_id)
        return template_id
    return _make
