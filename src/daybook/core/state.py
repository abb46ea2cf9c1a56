# src/daybook/core/state.py

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime

from ..tasks.task_models import CascadePolicy
from .ports import Clock, Store


@dataclass
class AppState:
    # Settings object (config.Settings or a SimpleNamespace in tests).
    settings: object

    store: Store
    cascade_policy: CascadePolicy = CascadePolicy.FORWARD_ONLY
    clock: Clock = field(default=time.time)

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def now(self) -> datetime:
        """Current local time (naive), for day/week/month boundaries."""
        return datetime.fromtimestamp(self.clock())

    @property
    def uncategorized_label(self) -> str:
        return str(getattr(self.settings, "uncategorized_label", "Uncategorized"))
