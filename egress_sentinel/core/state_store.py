"""
Persistence collaborators for EngineState.

The engine only relies on the StateStore protocol; a store may raise from
either method and the engine will carry on with its in-memory state.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, Union

from egress_sentinel.config import DEFAULT_CONFIG, EngineConfig
from egress_sentinel.core.telemetry import EngineState

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    def load_state(self) -> Optional[EngineState]:
        ...

    def save_state(self, state: EngineState) -> None:
        ...


class InMemoryStateStore:
    def __init__(self, state: Optional[EngineState] = None):
        self._state = state
        self.saves = 0

    def load_state(self) -> Optional[EngineState]:
        return self._state

    def save_state(self, state: EngineState) -> None:
        self._state = state
        self.saves += 1


class JsonFileStateStore:
    """
    Keeps the whole state blob as a single JSON document.

    save_every throttles disk writes: only every Nth save_state() call is written.
    Up to save_every - 1 updates are held back until flush() is called.
    """

    def __init__(
        self,
        path: Union[str, Path],
        config: EngineConfig = DEFAULT_CONFIG,
        save_every: int = 1,
    ):
        if save_every < 1:
            raise ValueError(f"save_every must be >= 1, got {save_every}")
        self.path = Path(path)
        self.config = config
        self.save_every = save_every
        self._pending = 0

    def load_state(self) -> Optional[EngineState]:
        if not self.path.exists():
            return None
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return EngineState.from_dict(data, self.config)

    def save_state(self, state: EngineState) -> None:
        self._pending += 1
        if self._pending < self.save_every:
            return
        self.flush(state)

    def flush(self, state: EngineState) -> None:
        """Write the state now, regardless of the save_every throttle."""
        self._pending = 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(state.to_dict()), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("Engine state written to %s", self.path)
