import json

import pytest
from pydantic import ValidationError

from conftest import ADMIN
from insured_templates.config import (
    PricingConfig,
    PricingTier,
    TemplateValidationRules,
    load_pricing_config,
    load_validation_rules,
)
from insured_templates.errors import TemplateValidationFailed
from insured_templates.governance import InMemoryGovernance
from insured_templates.pricing.templates import RiskLevel
from insured_templates.registry.service import TemplateRegistry

RULE_VARS = (
    "TEMPLATE_MIN_COLLATERAL_RATIO_BPS",
    "TEMPLATE_MAX_PREMIUM_RATE_BPS",
    "TEMPLATE_MIN_DURATION_DAYS",
    "TEMPLATE_MAX_DURATION_DAYS",
    "TEMPLATE_APPROVAL_THRESHOLD_BPS",
    "TEMPLATE_MIN_UPDATE_INTERVAL",
    "PRICING_CONFIG_PATH",
)


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so teardown also removes anything a .env file loads
    for name in RULE_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


def test_default_rules():
    rules = TemplateValidationRules()
    assert rules.min_collateral_ratio_bps == 1000
    assert rules.max_premium_rate_bps == 5000
    assert (rules.min_duration_days, rules.max_duration_days) == (1, 365)
    assert rules.approval_threshold_bps == 5100
    assert rules.min_update_interval == 86400
    assert rules.violations() == []


def test_inconsistent_rules_report_every_violation():
    rules = TemplateValidationRules(
        min_duration_days=400,
        max_duration_days=30,
        approval_threshold_bps=5000,
        max_premium_rate_bps=12_000,
    )
    with pytest.raises(TemplateValidationFailed) as excinfo:
        rules.ensure_consistent()
    assert len(excinfo.value.violations) == 3


def test_negative_rule_values_fail_field_validation():
    with pytest.raises(ValidationError):
        TemplateValidationRules(min_update_interval=-1)


def test_registry_refuses_inconsistent_config():
    with pytest.raises(TemplateValidationFailed):
        TemplateRegistry(ADMIN, InMemoryGovernance(), rules=TemplateValidationRules(min_duration_days=0))

    bad_pricing = PricingConfig(
        risk_multipliers_bps={
            RiskLevel.LOW: 10000,
            RiskLevel.MEDIUM: 10000,
            RiskLevel.HIGH: 15000,
            RiskLevel.VERY_HIGH: 25000,
        }
    )
    with pytest.raises(TemplateValidationFailed):
        TemplateRegistry(ADMIN, InMemoryGovernance(), pricing=bad_pricing)


def test_pricing_config_checks():
    assert PricingConfig().violations() == []

    config = PricingConfig(
        risk_multipliers_bps={RiskLevel.LOW: 8000},
        tiers=(PricingTier(threshold=5, multiplier_bps=10000), PricingTier(threshold=5, multiplier_bps=9000)),
        param_adjustments_bps={"additional_coverage": 0},
    )
    problems = config.violations()
    assert len(problems) == 4
    assert any("missing" in p for p in problems)

    assert PricingConfig(tiers=()).violations() == ["at least one pricing tier is required"]


def test_tier_lookup_uses_inclusive_lower_bounds():
    config = PricingConfig()
    assert config.tier_for(1).multiplier_bps == 10000
    assert config.tier_for(100_000_000).multiplier_bps == 10000
    assert config.tier_for(100_000_001).multiplier_bps == 9000
    assert config.tier_for(1_000_000_000).multiplier_bps == 9000
    assert config.tier_for(1_000_000_001).multiplier_bps == 8000


# =========================
# Loading
# =========================

def test_rules_from_environment(clean_env):
    clean_env.setenv("TEMPLATE_MAX_PREMIUM_RATE_BPS", "4000")
    clean_env.setenv("TEMPLATE_MIN_UPDATE_INTERVAL", "60")
    rules = load_validation_rules()
    assert rules.max_premium_rate_bps == 4000
    assert rules.min_update_interval == 60
    assert rules.min_collateral_ratio_bps == 1000


def test_rules_from_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("TEMPLATE_MAX_DURATION_DAYS=180\nTEMPLATE_APPROVAL_THRESHOLD_BPS=6600\n", encoding="utf-8")
    rules = load_validation_rules(env_file)
    assert rules.max_duration_days == 180
    assert rules.approval_threshold_bps == 6600


def test_malformed_rule_value(clean_env):
    clean_env.setenv("TEMPLATE_MIN_DURATION_DAYS", "seven")
    with pytest.raises(ValueError):
        load_validation_rules()


def test_pricing_defaults_without_a_file(clean_env):
    assert load_pricing_config() == PricingConfig()


def test_pricing_from_json(clean_env, tmp_path):
    path = tmp_path / "pricing.json"
    path.write_text(
        json.dumps(
            {
                "risk_multipliers_bps": {"low": 9000, "medium": 10000, "high": 12000, "very_high": 20000},
                "tiers": [{"threshold": 0, "multiplier_bps": 10000}, {"threshold": 5000, "multiplier_bps": 7500}],
                "param_adjustments_bps": {"roadside_assist": 10500},
            }
        ),
        encoding="utf-8",
    )
    clean_env.setenv("PRICING_CONFIG_PATH", str(path))

    config = load_pricing_config()
    assert config.risk_multiplier(RiskLevel.VERY_HIGH) == 20000
    assert config.tier_for(5000).multiplier_bps == 7500
    assert config.param_adjustments_bps == {"roadside_assist": 10500}
    assert config.violations() == []


def test_missing_pricing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Missing pricing config"):
        load_pricing_config(tmp_path / "absent.json")
