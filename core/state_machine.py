import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, Set, TypeVar

from core.observable import ObservableValue

S = TypeVar("S")


class InvalidTransitionError(Exception):
    """Raised when a transition is not in the allowed table"""
    pass


class StateMachine(Generic[S]):
    """
    Guarded state holder driven by an allowed-transition table.

    States can be plain Enum members or richer objects carrying data; the
    `phase_of` function maps a state object to the Enum member used for
    table lookups. The current state is published through an
    ObservableValue so subscribers get last-value replay.
    """

    def __init__(
        self,
        initial_state: S,
        transitions: Dict[Enum, Set[Enum]],
        phase_of: Callable[[S], Enum] = lambda state: state,
        name: str = "state machine",
    ):
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.transitions = transitions
        self.phase_of = phase_of

        self.holder: ObservableValue[S] = ObservableValue(initial_state, name=name)
        self.previous_state: Optional[S] = None
        self.state_start_time = time.time()

        # Callbacks for components
        self.callbacks: Dict[str, Optional[Callable]] = {
            "on_state_change": None,  # Called with (old_state, new_state)
        }

        self.logger.info(
            f"{name} initialized in {self.phase_of(initial_state).value} state"
        )

    def register_callback(self, callback_name: str, callback_func: Callable):
        """Register a callback function for state machine events"""
        if callback_name in self.callbacks:
            self.callbacks[callback_name] = callback_func
            self.logger.debug(f"Registered callback: {callback_name}")
        else:
            raise ValueError(f"Unknown callback: {callback_name}")

    @property
    def state(self) -> S:
        """Get the current state"""
        return self.holder.value

    @property
    def phase(self) -> Enum:
        """Get the phase of the current state"""
        return self.phase_of(self.holder.value)

    def get_state_duration(self) -> float:
        """Get how long we've been in the current state (seconds)"""
        return time.time() - self.state_start_time

    def can_transition(self, new_phase: Enum) -> bool:
        return new_phase in self.transitions.get(self.phase, set())

    def transition_to(self, new_state: S, reason: str = "") -> S:
        """
        Transition to a new state with logging and callback notification.

        Args:
            new_state: Target state
            reason: Free text for the log line

        Returns:
            The state that was replaced

        Raises:
            InvalidTransitionError: If the table does not allow the move
        """
        old_state = self.holder.value
        old_phase = self.phase_of(old_state)
        new_phase = self.phase_of(new_state)

        if new_phase not in self.transitions.get(old_phase, set()):
            raise InvalidTransitionError(
                f"{self.name}: {old_phase.value} -> {new_phase.value} not allowed"
            )

        self.previous_state = old_state
        self.state_start_time = time.time()

        log_msg = f"State transition: {old_phase.value} -> {new_phase.value}"
        if reason:
            log_msg += f" ({reason})"
        self.logger.info(log_msg)

        self.holder.set(new_state, force=True)

        # Notify components of state change
        if self.callbacks["on_state_change"]:
            try:
                self.callbacks["on_state_change"](old_state, new_state)
            except Exception as e:
                self.logger.error(f"Error in state change callback: {e}")

        return old_state

    def get_status_info(self) -> Dict[str, Any]:
        """Get detailed status information for debugging/monitoring"""
        return {
            "current_state": self.phase.value,
            "previous_state": (
                self.phase_of(self.previous_state).value
                if self.previous_state is not None
                else None
            ),
            "state_duration": self.get_state_duration(),
        }
