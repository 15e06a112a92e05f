"""Estimated spares cost of a plan."""

from __future__ import annotations

from dataclasses import dataclass, field

from maintplan.models import SpareStock, Task


@dataclass
class CostLine:
    """Cost of one required spare of one task."""

    task_id: str
    material_id: str
    material_name: str
    quantity: float
    uom: str
    unit_price: float

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


@dataclass
class CostEstimate:
    lines: list[CostLine] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(line.total for line in self.lines)


def estimate_spares_cost(tasks: list[Task], stock: dict[str, SpareStock]) -> CostEstimate:
    """Price every (task, required spare) pair; unknown prices count as 0."""
    estimate = CostEstimate()
    for task in tasks:
        for spare in task.required_spares:
            entry = stock.get(spare.material_id)
            estimate.lines.append(
                CostLine(
                    task_id=task.task_id,
                    material_id=spare.material_id,
                    material_name=spare.name,
                    quantity=spare.quantity,
                    uom=spare.uom,
                    unit_price=entry.price if entry else 0.0,
                )
            )
    return estimate
