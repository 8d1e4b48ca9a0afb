"""
hms/domain/state_machine.py

State machine definitions for the two independent reservation axes.

A reservation carries an approval ``status`` and a physical-presence
``checkin_status``. Each axis has its own machine; the ORM entity stores
both values privately and only changes them through these machines.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Set
import logging

from hms.models.enums import ReservationStatus, CheckinStatus

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValueError):
    """Raised when a transition is not allowed by the machine."""

    def __init__(self, machine: str, current: Enum, target: Enum):
        self.machine = machine
        self.current = current
        self.target = target
        super().__init__(
            f"{machine}: transition '{current.value}' -> '{target.value}' is not allowed"
        )


@dataclass(frozen=True)
class StateTransition:
    """
    State transition definition

    Attributes:
        from_state: source state
        to_state: target state
        trigger: name of the operation performing the transition
    """

    from_state: Enum
    to_state: Enum
    trigger: str


@dataclass
class StateMachineConfig:
    """
    State machine configuration

    Attributes:
        name: machine name (used in error messages)
        states: every state of the axis
        transitions: allowed transitions
        initial_state: state of a freshly created record
        idempotent_states: states for which re-entering the same state is a no-op
    """

    name: str
    states: List[Enum]
    transitions: List[StateTransition]
    initial_state: Enum
    idempotent_states: FrozenSet[Enum] = field(default_factory=frozenset)


class StateMachine:
    """
    Stateless transition validator.

    The current state lives on the entity; the machine only answers whether
    a move is legal.

    Example:
        >>> RESERVATION_STATUS_MACHINE.can_transition(
        ...     ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
        True
    """

    def __init__(self, config: StateMachineConfig):
        self._config = config
        self._transition_map: Dict[Enum, Dict[Enum, StateTransition]] = {}

        for t in config.transitions:
            self._transition_map.setdefault(t.from_state, {})[t.to_state] = t

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def initial_state(self) -> Enum:
        return self._config.initial_state

    @property
    def states(self) -> List[Enum]:
        return list(self._config.states)

    def is_noop(self, current: Enum, target: Enum) -> bool:
        """Re-entering an idempotent state changes nothing"""
        return current == target and current in self._config.idempotent_states

    def can_transition(self, current: Enum, target: Enum) -> bool:
        if self.is_noop(current, target):
            return True
        return target in self._transition_map.get(current, {})

    def get_valid_targets(self, current: Enum) -> Set[Enum]:
        return set(self._transition_map.get(current, {}))

    def is_terminal(self, state: Enum) -> bool:
        return not self._transition_map.get(state)

    def validate(self, current: Enum, target: Enum) -> None:
        """Raise InvalidTransitionError unless current -> target is allowed"""
        if target not in self._config.states:
            raise InvalidTransitionError(self.name, current, target)
        if not self.can_transition(current, target):
            logger.debug(
                "%s rejected transition %s -> %s", self.name, current.value, target.value
            )
            raise InvalidTransitionError(self.name, current, target)


# ============== Reservation approval status ==============

RESERVATION_STATUS_MACHINE = StateMachine(
    StateMachineConfig(
        name="ReservationStatus",
        states=list(ReservationStatus),
        transitions=[
            StateTransition(ReservationStatus.PENDING, ReservationStatus.CONFIRMED, "confirm"),
            StateTransition(ReservationStatus.PENDING, ReservationStatus.CANCELLED, "cancel"),
            StateTransition(ReservationStatus.PENDING, ReservationStatus.NO_SHOW, "mark_no_show"),
            StateTransition(ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED, "cancel"),
            StateTransition(ReservationStatus.CONFIRMED, ReservationStatus.NO_SHOW, "mark_no_show"),
        ],
        initial_state=ReservationStatus.PENDING,
        # confirmed is monotonic: confirming again never reverts or fails
        idempotent_states=frozenset({ReservationStatus.CONFIRMED}),
    )
)


# ============== Physical presence ==============

CHECKIN_STATUS_MACHINE = StateMachine(
    StateMachineConfig(
        name="CheckinStatus",
        states=list(CheckinStatus),
        transitions=[
            StateTransition(CheckinStatus.NOT_CHECKED_IN, CheckinStatus.CHECKED_IN, "check_in"),
            StateTransition(CheckinStatus.CHECKED_IN, CheckinStatus.CHECKED_OUT, "check_out"),
        ],
        initial_state=CheckinStatus.NOT_CHECKED_IN,
    )
)
