"""
Fault injection policies.

Each run draws its fault flag exactly once, when the run starts. The flag
decides which branch the staged ticks take:

    False → 10 → 30 → 60 → 85 → 100 (completed)
    True  → 10 → 30 → 35 → failed at 35

Examples:
    RandomFaultPolicy(0.2)   → one run in five fails (production default)
    FixedFaultPolicy(False)  → every run succeeds (tests, demos)
    FixedFaultPolicy(True)   → every run fails (demo the failure + retry path)
"""

import random
from typing import Optional, Protocol


class FaultPolicy(Protocol):

    def should_fail(self, job_id: str) -> bool:
        """Decide, once per run, whether this run takes the failure branch."""
        ...


class RandomFaultPolicy:

    def __init__(self, probability: float, rng: Optional[random.Random] = None):
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"fault probability must be within [0, 1], got {probability}")
        self.probability = probability
        self._rng = rng or random.Random()

    def should_fail(self, job_id: str) -> bool:
        return self._rng.random() < self.probability


class FixedFaultPolicy:

    def __init__(self, fail: bool):
        self.fail = fail

    def should_fail(self, job_id: str) -> bool:
        return self.fail
