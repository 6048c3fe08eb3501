"""
Core utilities and modules.

Public API:
    - ObservableValue: State holder with last-value replay
    - EventBus / EventType / Event: Typed in-process event channel
    - StateMachine: Guarded transitions over an allowed-transition table
    - check_internet_connectivity / is_wifi_connected: Network probes
    - create_keep_awake: Keep-awake resource for recording sessions

Usage:
    from core.network import is_wifi_connected

    if is_wifi_connected():
        print("Wi-Fi up")
"""

from core.event_bus import Event, EventBus, EventType
from core.keep_awake import KeepAwakeInterface, NullKeepAwake, create_keep_awake
from core.network import (
    check_internet_connectivity,
    get_network_status,
    is_wifi_connected,
)
from core.observable import ObservableValue
from core.state_machine import InvalidTransitionError, StateMachine

__all__ = [
    "Event",
    "EventBus",
    "EventType",
    "InvalidTransitionError",
    "KeepAwakeInterface",
    "NullKeepAwake",
    "ObservableValue",
    "StateMachine",
    "check_internet_connectivity",
    "create_keep_awake",
    "get_network_status",
    "is_wifi_connected",
]
