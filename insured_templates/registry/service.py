# insured_templates/registry/service.py
"""
TemplateRegistry - owns templates, policies and their lifecycle.

Every public operation is one atomic unit: all validation runs first, then
the registry performs its single write. A failure raises a typed
TemplateError and leaves the stores exactly as they were.

Flow:
  creator -> create_template (Draft) -> submit_template_for_review
  governance -> propose_template_approval -> execute_template_approval
  admin -> deploy_template (Active) -> retire_template -> archive_template
  customer -> create_policy_from_template
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from insured_templates.common.clock import Clock, SystemClock
from insured_templates.common.validation import (
    validate_basis_points,
    validate_min_max,
    validate_non_negative_amount,
    validate_positive_amount,
    validate_string_length,
    validate_u32,
    validate_voting_threshold,
)
from insured_templates.config import PricingConfig, TemplateValidationRules
from insured_templates.errors import (
    GovernanceApprovalRequired,
    InvalidInput,
    NotFound,
    Paused,
    TemplateError,
    Unauthorized,
    UpdateTooSoon,
)
from insured_templates.governance import GovernanceGateway, ProposalKind, ProposalOutcome
from insured_templates.pricing.engine import Quote
from insured_templates.pricing.params import CustomParam, ParamValue, validate_schema
from insured_templates.pricing.templates import (
    CoverageType,
    PremiumModel,
    ProductCategory,
    ProductTemplate,
    RiskLevel,
    TemplatePolicy,
    TemplateStatus,
    coerce_enum,
)
from insured_templates.registry.access import AccessControl, validate_identity
from insured_templates.registry.factory import PolicyFactory
from insured_templates.registry.lifecycle import LifecycleAction, ensure_updatable, next_status, require_status
from insured_templates.registry.store import PolicyStore, TemplateStore, paginate

logger = logging.getLogger(__name__)

MAX_NAME_LEN = 64
MAX_DESCRIPTION_LEN = 1_024
MAX_REASON_LEN = 256
MIN_TITLE_LEN = 3
MAX_TITLE_LEN = 200
MAX_PROPOSAL_DESCRIPTION_LEN = 2_048


@dataclass(frozen=True)
class ApprovalStatus:
    status: TemplateStatus
    approval_proposal_id: Optional[int]
    rejection_proposal_id: Optional[int]


@dataclass(frozen=True)
class _ProposalLink:
    template_id: int
    kind: ProposalKind


def _operation(fn):
    """Log rejected operations before the error reaches the caller."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except TemplateError as exc:
            logger.debug("%s rejected: %s (%s)", fn.__name__, exc.code, exc.message)
            raise
    return wrapper


class TemplateRegistry:
    def __init__(
        self,
        admin: str,
        governance: GovernanceGateway,
        rules: Optional[TemplateValidationRules] = None,
        pricing: Optional[PricingConfig] = None,
        clock: Optional[Clock] = None,
        governance_participants: Iterable[str] = (),
    ):
        self.rules = (rules or TemplateValidationRules()).ensure_consistent()
        # private copy; the caller may still hold the original tables
        self.pricing = (pricing or PricingConfig()).model_copy(deep=True).ensure_consistent()
        self.clock = clock or SystemClock()
        self.access = AccessControl(admin, governance_participants)
        self.governance = governance

        self._templates = TemplateStore()
        self._policies = PolicyStore()
        self._factory = PolicyFactory(self._templates, self._policies, self.pricing, self.clock)
        self._proposals: Dict[int, _ProposalLink] = {}
        self._open_proposals: Dict[Tuple[int, ProposalKind], int] = {}
        self._paused = False

    # ============================================================
    # Validation helpers
    # ============================================================

    def _require_running(self) -> None:
        if self._paused:
            raise Paused("registry is paused")

    def _validated_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check a complete set of template fields against the global rules
        and against each other. Returns the normalized values.
        """
        rules = self.rules
        out: Dict[str, Any] = {
            "name": validate_string_length(fields["name"], 1, MAX_NAME_LEN, "name"),
            "description": validate_string_length(fields["description"], 0, MAX_DESCRIPTION_LEN, "description"),
            "category": coerce_enum(fields["category"], ProductCategory, "category"),
            "risk_level": coerce_enum(fields["risk_level"], RiskLevel, "risk_level"),
            "premium_model": coerce_enum(fields["premium_model"], PremiumModel, "premium_model"),
            "coverage_type": coerce_enum(fields["coverage_type"], CoverageType, "coverage_type"),
        }

        # coverage
        min_cov = validate_positive_amount(fields["min_coverage"], "min_coverage")
        max_cov = validate_positive_amount(fields["max_coverage"], "max_coverage")
        validate_min_max(min_cov, max_cov, "coverage")

        # duration, inside the global window
        min_days = validate_u32(fields["min_duration_days"], "min_duration_days")
        max_days = validate_u32(fields["max_duration_days"], "max_duration_days")
        validate_min_max(min_days, max_days, "duration_days")
        if min_days < rules.min_duration_days or max_days > rules.max_duration_days:
            raise InvalidInput(
                f"duration [{min_days}, {max_days}] outside allowed "
                f"[{rules.min_duration_days}, {rules.max_duration_days}]"
            )

        # deductible
        min_ded = validate_non_negative_amount(fields["min_deductible"], "min_deductible")
        max_ded = validate_non_negative_amount(fields["max_deductible"], "max_deductible")
        validate_min_max(min_ded, max_ded, "deductible")

        # pricing knobs
        rate = validate_basis_points(fields["base_premium_rate_bps"], "base_premium_rate_bps")
        if rate > rules.max_premium_rate_bps:
            raise InvalidInput(f"base_premium_rate_bps {rate} above maximum {rules.max_premium_rate_bps}")
        collateral = validate_basis_points(fields["collateral_ratio_bps"], "collateral_ratio_bps")
        if collateral < rules.min_collateral_ratio_bps:
            raise InvalidInput(
                f"collateral_ratio_bps {collateral} below minimum {rules.min_collateral_ratio_bps}"
            )

        out.update(
            min_coverage=min_cov,
            max_coverage=max_cov,
            min_duration_days=min_days,
            max_duration_days=max_days,
            min_deductible=min_ded,
            max_deductible=max_ded,
            base_premium_rate_bps=rate,
            collateral_ratio_bps=collateral,
            custom_params=validate_schema(fields["custom_params"]),
        )
        return out

    def _validate_proposal_text(self, title: str, description: str) -> None:
        validate_string_length(title, MIN_TITLE_LEN, MAX_TITLE_LEN, "title")
        validate_string_length(description, 1, MAX_PROPOSAL_DESCRIPTION_LEN, "description")

    def _transition(self, template: ProductTemplate, action: LifecycleAction) -> ProductTemplate:
        target = next_status(template.status, action)
        updated = replace(template, status=target, updated_at=max(template.updated_at, self.clock.now()))
        self._templates.replace(updated)
        return updated

    # ============================================================
    # Template authoring
    # ============================================================

    @_operation
    def create_template(
        self,
        creator: str,
        name: str,
        description: str,
        category: ProductCategory,
        risk_level: RiskLevel,
        premium_model: PremiumModel,
        coverage_type: CoverageType,
        min_coverage: int,
        max_coverage: int,
        min_duration_days: int,
        max_duration_days: int,
        base_premium_rate_bps: int,
        min_deductible: int,
        max_deductible: int,
        collateral_ratio_bps: int,
        custom_params: Sequence[CustomParam] = (),
    ) -> int:
        self._require_running()
        validate_identity(creator, "creator")
        fields = self._validated_fields(
            dict(
                name=name,
                description=description,
                category=category,
                risk_level=risk_level,
                premium_model=premium_model,
                coverage_type=coverage_type,
                min_coverage=min_coverage,
                max_coverage=max_coverage,
                min_duration_days=min_duration_days,
                max_duration_days=max_duration_days,
                base_premium_rate_bps=base_premium_rate_bps,
                min_deductible=min_deductible,
                max_deductible=max_deductible,
                collateral_ratio_bps=collateral_ratio_bps,
                custom_params=custom_params,
            )
        )

        now = self.clock.now()
        template = ProductTemplate(
            id=self._templates.next_template_id(),
            status=TemplateStatus.DRAFT,
            creator=creator,
            created_at=now,
            updated_at=now,
            version=1,
            **fields,
        )
        self._templates.insert(template)

        logger.info("template_created id=%s creator=%s name=%s", template.id, creator, template.name)
        return template.id

    @_operation
    def update_template(
        self,
        caller: str,
        template_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[ProductCategory] = None,
        risk_level: Optional[RiskLevel] = None,
        premium_model: Optional[PremiumModel] = None,
        coverage_type: Optional[CoverageType] = None,
        min_coverage: Optional[int] = None,
        max_coverage: Optional[int] = None,
        min_duration_days: Optional[int] = None,
        max_duration_days: Optional[int] = None,
        base_premium_rate_bps: Optional[int] = None,
        min_deductible: Optional[int] = None,
        max_deductible: Optional[int] = None,
        collateral_ratio_bps: Optional[int] = None,
        custom_params: Optional[Sequence[CustomParam]] = None,
    ) -> None:
        """
        Replace any subset of the mutable fields. Unset fields keep their
        value; the merged template is re-validated as on creation. Status
        is left unchanged.
        """
        self._require_running()
        template = self._templates.get(template_id)
        if caller != template.creator:
            raise Unauthorized(f"{caller!r} is not the creator of template {template_id}")
        ensure_updatable(template.status)

        now = self.clock.now()
        elapsed = now - template.updated_at
        if elapsed < self.rules.min_update_interval:
            raise UpdateTooSoon(
                f"template {template_id} updated {elapsed}s ago; wait {self.rules.min_update_interval}s"
            )

        changes = dict(
            name=name,
            description=description,
            category=category,
            risk_level=risk_level,
            premium_model=premium_model,
            coverage_type=coverage_type,
            min_coverage=min_coverage,
            max_coverage=max_coverage,
            min_duration_days=min_duration_days,
            max_duration_days=max_duration_days,
            base_premium_rate_bps=base_premium_rate_bps,
            min_deductible=min_deductible,
            max_deductible=max_deductible,
            collateral_ratio_bps=collateral_ratio_bps,
            custom_params=custom_params,
        )
        merged = {key: getattr(template, key) if value is None else value for key, value in changes.items()}
        fields = self._validated_fields(merged)

        updated = replace(
            template,
            updated_at=max(template.updated_at, now),
            version=template.version + 1,
            **fields,
        )
        self._templates.replace(updated)

        logger.info("template_updated id=%s version=%s", template_id, updated.version)

    @_operation
    def submit_template_for_review(self, caller: str, template_id: int) -> None:
        self._require_running()
        template = self._templates.get(template_id)
        if caller != template.creator:
            raise Unauthorized(f"{caller!r} is not the creator of template {template_id}")
        self._transition(template, LifecycleAction.SUBMIT)

        logger.info("template_submitted id=%s", template_id)

    # ============================================================
    # Governance approval
    # ============================================================

    def _open_proposal(
        self,
        caller: str,
        template_id: int,
        kind: ProposalKind,
        title: str,
        description: str,
        threshold_pct: int,
    ) -> int:
        self._require_running()
        self.access.require_governance(caller)
        pct = validate_voting_threshold(threshold_pct, self.rules.approval_threshold_bps)
        self._validate_proposal_text(title, description)
        template = self._templates.get(template_id)
        require_status(template.status, TemplateStatus.PENDING_REVIEW)

        proposal_id = self.governance.propose(caller, template_id, kind, title, description, pct * 100)
        self._proposals[proposal_id] = _ProposalLink(template_id, kind)
        self._open_proposals[(template_id, kind)] = proposal_id

        logger.info(
            "template_%s_proposed template=%s proposal=%s threshold_pct=%s",
            kind.value, template_id, proposal_id, pct,
        )
        return proposal_id

    def _close_proposal(
        self,
        caller: str,
        proposal_id: int,
        template_id: int,
        kind: ProposalKind,
    ) -> Tuple[ProductTemplate, ProposalOutcome]:
        self._require_running()
        self.access.require_governance(caller)
        link = self._proposals.get(proposal_id)
        if link is None or link.template_id != template_id or link.kind is not kind:
            raise NotFound(f"no open {kind.value} proposal {proposal_id} for template {template_id}")
        template = self._templates.get(template_id)
        require_status(template.status, TemplateStatus.PENDING_REVIEW)

        outcome = self.governance.outcome(proposal_id)
        if outcome is ProposalOutcome.PENDING:
            raise GovernanceApprovalRequired(f"proposal {proposal_id} has not been decided")
        return template, outcome

    def _forget_proposal(self, proposal_id: int) -> None:
        link = self._proposals.pop(proposal_id)
        if self._open_proposals.get((link.template_id, link.kind)) == proposal_id:
            del self._open_proposals[(link.template_id, link.kind)]

    def _forget_template_proposals(self, template_id: int) -> None:
        # the review is over; every proposal still bound to it is void
        for proposal_id, link in list(self._proposals.items()):
            if link.template_id == template_id:
                self._forget_proposal(proposal_id)

    @_operation
    def propose_template_approval(
        self,
        caller: str,
        template_id: int,
        title: str,
        description: str,
        threshold_pct: int,
    ) -> int:
        return self._open_proposal(caller, template_id, ProposalKind.APPROVAL, title, description, threshold_pct)

    @_operation
    def execute_template_approval(self, caller: str, proposal_id: int, template_id: int) -> None:
        """Pass -> Approved, fail -> back to Draft."""
        template, outcome = self._close_proposal(caller, proposal_id, template_id, ProposalKind.APPROVAL)
        action = LifecycleAction.APPROVE if outcome is ProposalOutcome.PASS else LifecycleAction.REJECT
        updated = self._transition(template, action)
        self._forget_template_proposals(template_id)

        logger.info(
            "template_approval_executed id=%s proposal=%s outcome=%s status=%s",
            template_id, proposal_id, outcome.value, updated.status.value,
        )

    @_operation
    def propose_template_rejection(
        self,
        caller: str,
        template_id: int,
        title: str,
        description: str,
        reason: str,
        threshold_pct: int,
    ) -> int:
        validate_string_length(reason, 1, MAX_REASON_LEN, "reason")
        return self._open_proposal(caller, template_id, ProposalKind.REJECTION, title, description, threshold_pct)

    @_operation
    def execute_template_rejection(self, caller: str, proposal_id: int, template_id: int) -> None:
        """Pass -> back to Draft; a voted-down rejection leaves the review open."""
        template, outcome = self._close_proposal(caller, proposal_id, template_id, ProposalKind.REJECTION)
        if outcome is ProposalOutcome.PASS:
            self._transition(template, LifecycleAction.REJECT)
            self._forget_template_proposals(template_id)
        else:
            self._forget_proposal(proposal_id)

        logger.info(
            "template_rejection_executed id=%s proposal=%s outcome=%s",
            template_id, proposal_id, outcome.value,
        )

    def get_template_approval_status(self, template_id: int) -> ApprovalStatus:
        template = self._templates.get(template_id)
        if template.status is not TemplateStatus.PENDING_REVIEW:
            return ApprovalStatus(template.status, None, None)
        return ApprovalStatus(
            status=template.status,
            approval_proposal_id=self._open_proposals.get((template_id, ProposalKind.APPROVAL)),
            rejection_proposal_id=self._open_proposals.get((template_id, ProposalKind.REJECTION)),
        )

    # ============================================================
    # Deployment (admin)
    # ============================================================

    def _admin_transition(self, caller: str, template_id: int, action: LifecycleAction) -> ProductTemplate:
        self._require_running()
        self.access.require_admin(caller)
        return self._transition(self._templates.get(template_id), action)

    @_operation
    def deploy_template(self, caller: str, template_id: int) -> None:
        self._admin_transition(caller, template_id, LifecycleAction.DEPLOY)
        logger.info("template_deployed id=%s", template_id)

    @_operation
    def retire_template(self, caller: str, template_id: int, reason: str) -> None:
        validate_string_length(reason, 1, MAX_REASON_LEN, "reason")
        self._admin_transition(caller, template_id, LifecycleAction.RETIRE)
        logger.info("template_retired id=%s reason=%s", template_id, reason)

    @_operation
    def archive_template(self, caller: str, template_id: int, reason: str) -> None:
        validate_string_length(reason, 1, MAX_REASON_LEN, "reason")
        self._admin_transition(caller, template_id, LifecycleAction.ARCHIVE)
        logger.info("template_archived id=%s reason=%s", template_id, reason)

    # ============================================================
    # Policies
    # ============================================================

    @_operation
    def create_policy_from_template(
        self,
        holder: str,
        template_id: int,
        coverage_amount: int,
        duration_days: int,
        deductible: int,
        custom_values: Iterable[ParamValue] = (),
    ) -> int:
        self._require_running()
        return self._factory.create_policy(
            holder, template_id, coverage_amount, duration_days, deductible, custom_values
        )

    @_operation
    def quote_premium(
        self,
        template_id: int,
        coverage_amount: int,
        duration_days: int,
        deductible: int,
        custom_values: Iterable[ParamValue] = (),
    ) -> Quote:
        return self._factory.quote(template_id, coverage_amount, duration_days, deductible, custom_values)

    # ============================================================
    # Administration
    # ============================================================

    @_operation
    def pause(self, caller: str) -> None:
        self.access.require_admin(caller)
        self._paused = True
        logger.info("registry_paused by=%s", caller)

    @_operation
    def unpause(self, caller: str) -> None:
        self.access.require_admin(caller)
        self._paused = False
        logger.info("registry_unpaused by=%s", caller)

    def is_paused(self) -> bool:
        return self._paused

    @_operation
    def grant_governance(self, caller: str, participant: str) -> None:
        self.access.grant_governance(caller, participant)

    @_operation
    def revoke_governance(self, caller: str, participant: str) -> None:
        self.access.revoke_governance(caller, participant)

    # ============================================================
    # Reads
    # ============================================================

    def get_template(self, template_id: int) -> ProductTemplate:
        return self._templates.get(template_id)

    def get_template_policy(self, policy_id: int) -> TemplatePolicy:
        return self._policies.get(policy_id)

    def get_active_templates(self) -> List[ProductTemplate]:
        return list(self._templates.find(lambda t: t.status is TemplateStatus.ACTIVE))

    def get_templates_by_status(self, status: TemplateStatus, start: int, limit: int) -> List[ProductTemplate]:
        wanted = coerce_enum(status, TemplateStatus, "status")
        return paginate(self._templates.find(lambda t: t.status is wanted), start, limit)

    def get_templates_by_category(self, category: ProductCategory, start: int, limit: int) -> List[ProductTemplate]:
        wanted = coerce_enum(category, ProductCategory, "category")
        return paginate(self._templates.find(lambda t: t.category is wanted), start, limit)

    def get_policies_by_holder(self, holder: str, start: int, limit: int) -> List[TemplatePolicy]:
        return self._policies.by_holder(holder, start, limit)

    def get_policies_by_template(self, template_id: int, start: int, limit: int) -> List[TemplatePolicy]:
        return self._policies.by_template(template_id, start, limit)

    def get_template_count(self) -> int:
        return self._templates.count()

    def get_template_policy_count(self) -> int:
        return self._policies.count()

    def get_validation_rules(self) -> TemplateValidationRules:
        return self.rules


