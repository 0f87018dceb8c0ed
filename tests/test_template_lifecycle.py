import pytest

from conftest import ADMIN, COUNCIL, CREATOR, UPDATE_INTERVAL, template_kwargs
from insured_templates.errors import (
    InvalidInput,
    InvalidParameterValue,
    InvalidTemplateStatus,
    NotFound,
    Paused,
    Unauthorized,
    UpdateTooSoon,
)
from insured_templates.pricing.params import ChoiceParam
from insured_templates.pricing.templates import ProductCategory, TemplateStatus


def test_create_template_starts_as_draft_version_one(registry, clock, make_template):
    template_id = make_template()
    template = registry.get_template(template_id)

    assert template_id == 1
    assert template.status is TemplateStatus.DRAFT
    assert template.version == 1
    assert template.creator == CREATOR
    assert template.created_at == template.updated_at == clock.now()
    assert registry.get_template_count() == 1


def test_template_ids_are_sequential_and_unused_by_failures(registry, make_template):
    assert make_template() == 1
    with pytest.raises(InvalidInput):
        make_template(base_premium_rate_bps=5001)
    with pytest.raises(InvalidParameterValue):
        make_template(custom_params=(ChoiceParam("plan", options=("a", "b"), default_index=2),))
    assert make_template() == 2
    assert registry.get_template_count() == 2


@pytest.mark.parametrize(
    "overrides",
    [
        dict(name=""),
        dict(name="x" * 65),
        dict(description="x" * 1025),
        dict(min_coverage=0),
        dict(min_coverage=500, max_coverage=400),
        dict(min_duration_days=0),
        dict(max_duration_days=366),
        dict(min_duration_days=200, max_duration_days=100),
        dict(min_deductible=-1),
        dict(min_deductible=10, max_deductible=5),
        dict(collateral_ratio_bps=999),
        dict(collateral_ratio_bps=10_001),
        dict(base_premium_rate_bps=-1),
        dict(category="spaceflight"),
        dict(premium_model="auction"),
        dict(min_coverage=True),
    ],
)
def test_create_template_rejects_invalid_fields(registry, make_template, overrides):
    with pytest.raises(InvalidInput):
        make_template(**overrides)
    assert registry.get_template_count() == 0


def test_create_template_accepts_enum_values_by_name(registry):
    template_id = registry.create_template(CREATOR, **template_kwargs(category="auto", risk_level="high"))
    assert registry.get_template(template_id).category is ProductCategory.AUTO


def test_missing_template_is_not_found(registry):
    with pytest.raises(NotFound):
        registry.get_template(42)
    with pytest.raises(NotFound):
        registry.submit_template_for_review(CREATOR, 42)


# =========================
# Updates
# =========================

def test_update_is_rate_limited(registry, clock, make_template):
    template_id = make_template()
    with pytest.raises(UpdateTooSoon):
        registry.update_template(CREATOR, template_id, name="Renamed")

    clock.advance(UPDATE_INTERVAL - 1)
    with pytest.raises(UpdateTooSoon):
        registry.update_template(CREATOR, template_id, name="Renamed")

    clock.advance(1)
    registry.update_template(CREATOR, template_id, name="Renamed")
    template = registry.get_template(template_id)
    assert template.name == "Renamed"
    assert template.version == 2
    assert template.updated_at == clock.now()

    with pytest.raises(UpdateTooSoon):
        registry.update_template(CREATOR, template_id, name="Again")


def test_update_keeps_unset_fields_and_revalidates_merged_template(registry, clock, make_template):
    template_id = make_template()
    clock.advance(UPDATE_INTERVAL)

    # new minimum above the stored maximum
    with pytest.raises(InvalidInput):
        registry.update_template(CREATOR, template_id, min_coverage=20_000_000_000)
    assert registry.get_template(template_id).version == 1

    registry.update_template(CREATOR, template_id, base_premium_rate_bps=300)
    template = registry.get_template(template_id)
    assert template.base_premium_rate_bps == 300
    assert template.name == "Home Basic"
    assert template.status is TemplateStatus.DRAFT


def test_version_and_updated_at_only_move_forward(registry, clock, make_template):
    template_id = make_template()
    seen = [registry.get_template(template_id)]
    for rate in (210, 220, 230):
        clock.advance(UPDATE_INTERVAL)
        registry.update_template(CREATOR, template_id, base_premium_rate_bps=rate)
        seen.append(registry.get_template(template_id))

    assert [t.version for t in seen] == [1, 2, 3, 4]
    stamps = [t.updated_at for t in seen]
    assert stamps == sorted(stamps)


def test_only_creator_may_update_or_submit(registry, clock, make_template):
    template_id = make_template()
    clock.advance(UPDATE_INTERVAL)
    with pytest.raises(Unauthorized):
        registry.update_template("someone-else", template_id, name="Hijack")
    with pytest.raises(Unauthorized):
        registry.update_template(ADMIN, template_id, name="Hijack")
    with pytest.raises(Unauthorized):
        registry.submit_template_for_review("someone-else", template_id)


def test_update_allowed_in_approved_but_not_active(registry, clock, make_template, approve):
    template_id = make_template()
    approve(template_id)
    clock.advance(UPDATE_INTERVAL)
    registry.update_template(CREATOR, template_id, description="Revised wording")
    template = registry.get_template(template_id)
    assert template.status is TemplateStatus.APPROVED
    assert template.version == 2

    registry.deploy_template(ADMIN, template_id)
    clock.advance(UPDATE_INTERVAL)
    with pytest.raises(InvalidTemplateStatus):
        registry.update_template(CREATOR, template_id, description="Too late")


def test_update_blocked_while_pending_review(registry, clock, make_template):
    template_id = make_template()
    registry.submit_template_for_review(CREATOR, template_id)
    clock.advance(UPDATE_INTERVAL)
    with pytest.raises(InvalidTemplateStatus):
        registry.update_template(CREATOR, template_id, name="Sneaky")


# =========================
# Deployment and retirement
# =========================

def test_deploy_requires_approved_status(registry, make_template, approve):
    template_id = make_template()
    with pytest.raises(InvalidTemplateStatus):
        registry.deploy_template(ADMIN, template_id)

    approve(template_id)
    with pytest.raises(Unauthorized):
        registry.deploy_template(CREATOR, template_id)

    registry.deploy_template(ADMIN, template_id)
    assert registry.get_template(template_id).status is TemplateStatus.ACTIVE


def test_retire_then_archive(registry, make_active_template):
    template_id = make_active_template()
    registry.retire_template(ADMIN, template_id, "Replaced by v2 product")
    assert registry.get_template(template_id).status is TemplateStatus.DEPRECATED

    registry.archive_template(ADMIN, template_id, "End of run-off")
    assert registry.get_template(template_id).status is TemplateStatus.ARCHIVED


def test_archive_directly_from_approved(registry, make_template, approve):
    template_id = make_template()
    approve(template_id)
    registry.archive_template(ADMIN, template_id, "Never launched")
    assert registry.get_template(template_id).status is TemplateStatus.ARCHIVED


def test_archived_is_terminal(registry, clock, make_template, approve):
    template_id = make_template()
    approve(template_id)
    registry.archive_template(ADMIN, template_id, "Never launched")

    with pytest.raises(InvalidTemplateStatus):
        registry.deploy_template(ADMIN, template_id)
    with pytest.raises(InvalidTemplateStatus):
        registry.retire_template(ADMIN, template_id, "again")
    with pytest.raises(InvalidTemplateStatus):
        registry.archive_template(ADMIN, template_id, "again")

    clock.advance(UPDATE_INTERVAL)
    with pytest.raises(InvalidTemplateStatus):
        registry.update_template(CREATOR, template_id, name="Revived")
    with pytest.raises(InvalidTemplateStatus):
        registry.submit_template_for_review(CREATOR, template_id)
    with pytest.raises(InvalidTemplateStatus):
        registry.propose_template_approval(COUNCIL, template_id, "Approve template", "Bring it back", 60)
    assert registry.get_template(template_id).status is TemplateStatus.ARCHIVED


def test_illegal_admin_transitions(registry, make_template, make_active_template):
    draft_id = make_template()
    with pytest.raises(InvalidTemplateStatus):
        registry.retire_template(ADMIN, draft_id, "not live")
    with pytest.raises(InvalidTemplateStatus):
        registry.archive_template(ADMIN, draft_id, "not reviewed")

    active_id = make_active_template()
    with pytest.raises(InvalidTemplateStatus):
        registry.archive_template(ADMIN, active_id, "skip deprecation")
    with pytest.raises(InvalidInput):
        registry.retire_template(ADMIN, active_id, "")


def test_status_transitions_count_toward_rate_limit(registry, clock, make_template, approve):
    template_id = make_template()
    clock.advance(UPDATE_INTERVAL)
    approve(template_id)
    with pytest.raises(UpdateTooSoon):
        registry.update_template(CREATOR, template_id, name="Right after approval")


# =========================
# Pause and reads
# =========================

def test_pause_blocks_writes_but_not_reads(registry, make_template):
    template_id = make_template()
    with pytest.raises(Unauthorized):
        registry.pause(CREATOR)

    registry.pause(ADMIN)
    assert registry.is_paused()
    with pytest.raises(Paused):
        make_template()
    with pytest.raises(Paused):
        registry.submit_template_for_review(CREATOR, template_id)
    assert registry.get_template(template_id).status is TemplateStatus.DRAFT

    registry.unpause(ADMIN)
    registry.submit_template_for_review(CREATOR, template_id)
    assert registry.get_template(template_id).status is TemplateStatus.PENDING_REVIEW


def test_get_active_templates_is_idempotent(registry, make_template, make_active_template):
    make_template()
    first = make_active_template()
    second = make_active_template(category=ProductCategory.TRAVEL)

    active = registry.get_active_templates()
    assert [t.id for t in active] == [first, second]
    assert registry.get_active_templates() == active


def test_templates_by_status_and_category(registry, make_template, make_active_template):
    draft_ids = [make_template(), make_template(category=ProductCategory.CYBER)]
    active_id = make_active_template(category=ProductCategory.CYBER)

    drafts = registry.get_templates_by_status(TemplateStatus.DRAFT, 0, 10)
    assert [t.id for t in drafts] == draft_ids
    assert [t.id for t in registry.get_templates_by_status(TemplateStatus.DRAFT, 1, 10)] == draft_ids[1:]

    cyber = registry.get_templates_by_category(ProductCategory.CYBER, 0, 10)
    assert [t.id for t in cyber] == [draft_ids[1], active_id]
    assert registry.get_templates_by_category(ProductCategory.LIFE, 0, 10) == []


def test_validation_rules_are_exposed(registry, rules):
    assert registry.get_validation_rules() == rules
    assert registry.get_validation_rules().min_update_interval == UPDATE_INTERVAL
