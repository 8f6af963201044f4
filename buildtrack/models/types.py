# buildtrack type definitions
# Rev 0.1.0

from __future__ import annotations
from typing import Literal

# Trees sharing the nested-set index
TreeKind = Literal["office", "task"]

# Origin of a progress entry
EntrySource = Literal["real", "synthetic"]

# Dashboard schedule classification
ScheduleStatus = Literal["on_track", "behind"]
