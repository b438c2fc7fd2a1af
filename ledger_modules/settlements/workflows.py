"""
Settlement Workflows.

State machine for the settlement lifecycle: ACTIVE -> LIQUIDATED on
finalize, ACTIVE -> CANCELED on cancel.  Both targets are terminal.
"""

from dataclasses import dataclass

from ledger_kernel.logging_config import get_logger
from ledger_modules.settlements.models import SettlementStatus

logger = get_logger("modules.settlements.workflows")


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: SettlementStatus
    to_state: SettlementStatus
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: SettlementStatus
    states: tuple[SettlementStatus, ...]
    transitions: tuple[Transition, ...]

    def transition_for(self, current: SettlementStatus, action: str) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state is current and transition.action == action:
                return transition
        return None

    @property
    def terminal_states(self) -> tuple[SettlementStatus, ...]:
        sources = {t.from_state for t in self.transitions}
        return tuple(s for s in self.states if s not in sources)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

INSTALLMENTS_PAID = Guard(
    name="installments_paid",
    description="Every installment is paid, unless the caller forces finalization",
)


# -----------------------------------------------------------------------------
# Settlement Workflow
# -----------------------------------------------------------------------------

SETTLEMENT_WORKFLOW = Workflow(
    name="settlement",
    description="Negotiated settlement lifecycle",
    initial_state=SettlementStatus.ACTIVE,
    states=(
        SettlementStatus.ACTIVE,
        SettlementStatus.LIQUIDATED,
        SettlementStatus.CANCELED,
    ),
    transitions=(
        Transition(
            SettlementStatus.ACTIVE,
            SettlementStatus.LIQUIDATED,
            action="finalize",
            guard=INSTALLMENTS_PAID,
        ),
        Transition(SettlementStatus.ACTIVE, SettlementStatus.CANCELED, action="cancel"),
    ),
)

logger.debug(
    "settlement_workflow_registered",
    extra={
        "workflow_name": SETTLEMENT_WORKFLOW.name,
        "state_count": len(SETTLEMENT_WORKFLOW.states),
        "transition_count": len(SETTLEMENT_WORKFLOW.transitions),
    },
)
