# insured_templates/errors.py
from __future__ import annotations

from typing import List, Optional


class TemplateError(Exception):
    """Base class for every failure raised by the template registry."""

    code = "template_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class Unauthorized(TemplateError):
    code = "unauthorized"


class InvalidInput(TemplateError):
    code = "invalid_input"


class InvalidParameterValue(TemplateError):
    code = "invalid_parameter_value"


class InvalidTemplateStatus(TemplateError):
    code = "invalid_template_status"


class NotFound(TemplateError):
    code = "not_found"


class UpdateTooSoon(TemplateError):
    code = "update_too_soon"


class ThresholdTooLow(TemplateError):
    code = "threshold_too_low"


class InvalidPaginationParams(TemplateError):
    code = "invalid_pagination_params"


class Paused(TemplateError):
    code = "paused"


class GovernanceApprovalRequired(TemplateError):
    code = "governance_approval_required"


class TemplateValidationFailed(TemplateError):
    """Aggregate failure: carries every violation found, not just the first."""

    code = "template_validation_failed"

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations) or self.code)


class ArithmeticFault(TemplateError):
    code = "arithmetic_fault"


class Overflow(ArithmeticFault):
    code = "overflow"


class Underflow(ArithmeticFault):
    code = "underflow"


class DivisionByZero(ArithmeticFault):
    code = "division_by_zero"
