"""
Insured Templates
Parameterized insurance-product templates, governance approval and policy issuance.
"""

from .config import PricingConfig, TemplateValidationRules
from .governance import InMemoryGovernance, ProposalOutcome
from .registry.service import TemplateRegistry

__all__ = [
    'TemplateRegistry',
    'TemplateValidationRules',
    'PricingConfig',
    'InMemoryGovernance',
    'ProposalOutcome',
]
