"""
Network Connectivity Checker

Simple utilities to check internet and Wi-Fi availability.
Uses a socket connection to an external host for internet reachability and
the Linux sysfs network tree for Wi-Fi link state.
"""

import logging
import socket
from pathlib import Path
from typing import List, Optional, Tuple

from config.settings import (
    NETWORK_CHECK_HOST,
    NETWORK_CHECK_PORT,
    NETWORK_CHECK_TIMEOUT,
    SYS_CLASS_NET,
)

logger = logging.getLogger(__name__)


def check_internet_connectivity() -> bool:
    """
    Check if internet connection is available.

    Attempts a socket connection to a reliable external host (Google DNS).

    Returns:
        True if internet is available, False otherwise
    """
    try:
        with socket.create_connection(
            (NETWORK_CHECK_HOST, NETWORK_CHECK_PORT),
            timeout=NETWORK_CHECK_TIMEOUT,
        ):
            return True
    except OSError:
        # Network unavailable, timeout, or DNS lookup failed
        return False


def list_wifi_interfaces(sys_class_net: Optional[Path] = None) -> List[str]:
    """
    List wireless interfaces known to the kernel.

    An interface is wireless when its sysfs node has a `wireless`
    subdirectory (e.g. /sys/class/net/wlan0/wireless).
    """
    base = sys_class_net or SYS_CLASS_NET
    if not base.is_dir():
        return []

    return sorted(
        iface.name for iface in base.iterdir()
        if (iface / "wireless").is_dir()
    )


def is_wifi_connected(sys_class_net: Optional[Path] = None) -> bool:
    """
    Check if any Wi-Fi interface has its link up.

    Args:
        sys_class_net: sysfs network directory (tests pass a temp dir)

    Returns:
        True if at least one wireless interface reports operstate "up"
    """
    base = sys_class_net or SYS_CLASS_NET

    for name in list_wifi_interfaces(base):
        try:
            operstate = (base / name / "operstate").read_text().strip()
        except OSError as e:
            logger.debug(f"Cannot read operstate for {name}: {e}")
            continue
        if operstate == "up":
            return True

    return False


def get_network_status() -> Tuple[bool, str]:
    """
    Get human-readable network status.

    Returns:
        Tuple of (is_connected, status_string)
    """
    is_connected = check_internet_connectivity()
    if not is_connected:
        return False, "No internet connection"
    if is_wifi_connected():
        return True, "Internet available (Wi-Fi)"
    return True, "Internet available"
