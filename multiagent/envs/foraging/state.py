"""State representations for the foraging grid.

All mutable simulation state lives here: explicit and typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from multiagent.core.types import AgentID

Cell = tuple[int, int]


@dataclass(slots=True)
class ForagerState:
    """Per-agent mutable state."""

    agent_id: AgentID
    position: Cell
    collected: int = 0
    score: float = 0.0
    # Value gathered during the current tick (reset before each tick)
    gained: float = 0.0
    last_action: str | None = None


@dataclass(slots=True)
class Resource:
    position: Cell
    value: float
    collected_by: AgentID | None = None

    @property
    def available(self) -> bool:
        return self.collected_by is None


@dataclass(slots=True)
class ForagingState:
    """Environment-wide state of one foraging episode."""

    grid_size: int
    tick: int = 0
    resources: list[Resource] = field(default_factory=list)
    agents: dict[AgentID, ForagerState] = field(default_factory=dict)

    def remaining(self) -> list[Resource]:
        return [r for r in self.resources if r.available]

    def resource_at(self, cell: Cell) -> Resource | None:
        for resource in self.resources:
            if resource.available and resource.position == cell:
                return resource
        return None

    def clamp(self, x: int, y: int) -> Cell:
        hi = self.grid_size - 1
        return (min(max(x, 0), hi), min(max(y, 0), hi))
