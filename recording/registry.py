"""
Recorder Registry

Process-wide lookup of running recorders. A UI or control surface looks the
recorder up by name instead of owning it; holding a reference never
extends or controls the recorder's lifecycle. If a lookup returns None the
caller retries later.
"""

import logging
import threading
from typing import Dict, List, Optional

from recording.controllers.segment_recorder import SegmentRecorder

logger = logging.getLogger(__name__)

DEFAULT_RECORDER_NAME = "default"

_recorders: Dict[str, SegmentRecorder] = {}
_lock = threading.Lock()


def register_recorder(
    recorder: SegmentRecorder,
    name: str = DEFAULT_RECORDER_NAME,
) -> None:
    """Publish a recorder under a name, replacing any previous one"""
    with _lock:
        if name in _recorders and _recorders[name] is not recorder:
            logger.warning(f"Replacing registered recorder '{name}'")
        _recorders[name] = recorder
    logger.debug(f"Recorder registered: {name}")


def unregister_recorder(
    name: str = DEFAULT_RECORDER_NAME,
    recorder: Optional[SegmentRecorder] = None,
) -> bool:
    """
    Remove a recorder.

    When `recorder` is given, only remove the entry if it still points at
    that instance.
    """
    with _lock:
        current = _recorders.get(name)
        if current is None or (recorder is not None and current is not recorder):
            return False
        del _recorders[name]
    logger.debug(f"Recorder unregistered: {name}")
    return True


def lookup_recorder(name: str = DEFAULT_RECORDER_NAME) -> Optional[SegmentRecorder]:
    with _lock:
        return _recorders.get(name)


def registered_names() -> List[str]:
    with _lock:
        return sorted(_recorders)
