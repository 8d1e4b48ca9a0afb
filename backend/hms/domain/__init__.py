"""
Domain layer - reservation state machines
"""
from hms.domain.state_machine import (
    InvalidTransitionError,
    StateMachine,
    StateMachineConfig,
    StateTransition,
    RESERVATION_STATUS_MACHINE,
    CHECKIN_STATUS_MACHINE,
)

__all__ = [
    "InvalidTransitionError",
    "StateMachine",
    "StateMachineConfig",
    "StateTransition",
    "RESERVATION_STATUS_MACHINE",
    "CHECKIN_STATUS_MACHINE",
]
