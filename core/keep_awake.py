"""
Keep-Awake Resource

Holds the host awake while a recording session is active.

The real implementation keeps a `systemd-inhibit` child process alive for
the duration of the session; killing the child releases the inhibitor.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Optional


class KeepAwakeInterface(ABC):
    """Acquire/release contract for a keep-awake resource"""

    @abstractmethod
    def acquire(self) -> None:
        """Acquire the resource. Acquiring twice is a no-op."""
        pass

    @abstractmethod
    def release(self) -> None:
        """Release the resource. Releasing when not held is a no-op."""
        pass

    @abstractmethod
    def is_held(self) -> bool:
        pass


class SystemdInhibitor(KeepAwakeInterface):
    """
    Block sleep/idle via systemd-inhibit.

    Usage:
        lock = SystemdInhibitor()
        lock.acquire()
        # ... record ...
        lock.release()
    """

    def __init__(self, who: str = "segment-recorder", why: str = "Recording video"):
        self.logger = logging.getLogger(__name__)
        self.who = who
        self.why = why
        self._process: Optional[subprocess.Popen] = None

    @staticmethod
    def is_available() -> bool:
        return shutil.which("systemd-inhibit") is not None

    def acquire(self) -> None:
        if self.is_held():
            return

        command = [
            "systemd-inhibit",
            "--what=sleep:idle",
            f"--who={self.who}",
            f"--why={self.why}",
            "--mode=block",
            "sleep", "infinity",
        ]
        try:
            self._process = subprocess.Popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
            self.logger.info(f"Keep-awake acquired (PID: {self._process.pid})")
        except OSError as e:
            # Recording continues without the inhibitor
            self.logger.warning(f"Could not acquire keep-awake: {e}")
            self._process = None

    def release(self) -> None:
        if self._process is None:
            return

        try:
            self._process.terminate()
            self._process.wait(timeout=2.0)
        except subprocess.TimeoutExpired:
            self._process.kill()
            self._process.wait()
        finally:
            self._process = None
            self.logger.info("Keep-awake released")

    def is_held(self) -> bool:
        return self._process is not None and self._process.poll() is None


class NullKeepAwake(KeepAwakeInterface):
    """Keep-awake that only tracks state (tests, hosts without systemd)"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._held = False
        self.acquire_count = 0

    def acquire(self) -> None:
        if not self._held:
            self._held = True
            self.acquire_count += 1
            self.logger.debug("[MOCK] Keep-awake acquired")

    def release(self) -> None:
        if self._held:
            self._held = False
            self.logger.debug("[MOCK] Keep-awake released")

    def is_held(self) -> bool:
        return self._held


def create_keep_awake() -> KeepAwakeInterface:
    """Return the systemd inhibitor when available, else the null lock"""
    if SystemdInhibitor.is_available():
        return SystemdInhibitor()
    return NullKeepAwake()
