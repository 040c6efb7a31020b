"""Allocator — казначейские категории и план распределения supply."""

from .allocator import AllocationPlan, Allocator, SupplyDistribution, distribute_supply

__all__ = [
    "AllocationPlan",
    "Allocator",
    "SupplyDistribution",
    "distribute_supply",
]
