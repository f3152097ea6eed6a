"""Scope state container for the reverse graph walk.

This module defines the ScopeState dataclass that holds the mutable state of
one nested scope kind (worker allocation, stage, parallel branch) while the
walker traverses a graph. The walker owns three independent instances; none
of them is shared across walks.

State Fields:
    boundary_id: Id of the node where the scope opened (reverse walk closes
        the scope when it reaches this id)
    label: Captured worker label, stage name or parallel start id; None
        while the scope is closed

Usage Pattern:
    1. Walker sees a block-end revealing a boundary → open(boundary_id, label)
    2. Walker reaches the block-start whose id == boundary_id → close()
    3. Between the two, `is_open` is True and `label` is readable
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = ["ScopeState"]


@dataclass
class ScopeState:
    kind: str
    boundary_id: Optional[str] = None
    label: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.label is not None

    def open(self, boundary_id: Optional[str], label: str) -> None:
        self.boundary_id = boundary_id
        self.label = label

    def close(self) -> None:
        self.boundary_id = None
        self.label = None

    def closes_at(self, node_id: str) -> bool:
        """True when the scope is open and `node_id` is its opening boundary."""
        return self.is_open and self.boundary_id == node_id
