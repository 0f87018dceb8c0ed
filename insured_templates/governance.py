# insured_templates/governance.py
"""
Governance as an external decision oracle.

The registry never counts votes. It opens a proposal through a gateway and
later asks for the outcome; any voting scheme that can answer
pass / fail / pending plugs in behind the same two calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Protocol

from insured_templates.errors import NotFound

logger = logging.getLogger(__name__)


class ProposalOutcome(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    PENDING = "pending"


class ProposalKind(str, Enum):
    APPROVAL = "approval"
    REJECTION = "rejection"


class GovernanceGateway(Protocol):
    def propose(
        self,
        proposer: str,
        template_id: int,
        kind: ProposalKind,
        title: str,
        description: str,
        threshold_bps: int,
    ) -> int:
        ...

    def outcome(self, proposal_id: int) -> ProposalOutcome:
        """Raise NotFound for an id the gateway never issued."""
        ...


@dataclass
class Proposal:
    id: int
    proposer: str
    template_id: int
    kind: ProposalKind
    title: str
    description: str
    threshold_bps: int
    outcome: ProposalOutcome = ProposalOutcome.PENDING


class InMemoryGovernance:
    """Gateway whose outcomes are set directly with `decide`."""

    def __init__(self, first_id: int = 1):
        self._next_id = first_id
        self._proposals: Dict[int, Proposal] = {}

    def propose(
        self,
        proposer: str,
        template_id: int,
        kind: ProposalKind,
        title: str,
        description: str,
        threshold_bps: int,
    ) -> int:
        proposal_id = self._next_id
        self._proposals[proposal_id] = Proposal(
            id=proposal_id,
            proposer=proposer,
            template_id=template_id,
            kind=kind,
            title=title,
            description=description,
            threshold_bps=threshold_bps,
        )
        self._next_id += 1
        logger.info("proposal_opened id=%s kind=%s template=%s", proposal_id, kind.value, template_id)
        return proposal_id

    def outcome(self, proposal_id: int) -> ProposalOutcome:
        return self.get_proposal(proposal_id).outcome

    def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NotFound(f"proposal {proposal_id} not found")
        return proposal

    def decide(self, proposal_id: int, passed: bool) -> None:
        proposal = self.get_proposal(proposal_id)
        proposal.outcome = ProposalOutcome.PASS if passed else ProposalOutcome.FAIL
        logger.info("proposal_decided id=%s outcome=%s", proposal_id, proposal.outcome.value)
