"""Timing samples and per-transport statistics"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd


ROLES = ('fast', 'request_reply', 'persistent')


@dataclass(frozen=True)
class TimingTriple:
    """Round-trip durations (ms) of one instance, one per transport"""

    fast: float
    request_reply: float
    persistent: float

    def for_role(self, role: str) -> float:
        return getattr(self, role)


@dataclass
class SampleSet:
    """Timing triples of a run, in launch order"""

    samples: List[TimingTriple] = field(default_factory=list)

    def add(self, triple: TimingTriple):
        self.samples.append(triple)

    def column(self, role: str) -> List[float]:
        """Durations of one transport, still in launch order"""
        if role not in ROLES:
            raise KeyError(f"Unknown transport role: {role}")
        return [triple.for_role(role) for triple in self.samples]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per instance, one column per transport"""
        frame = pd.DataFrame(
            [[triple.for_role(role) for role in ROLES] for triple in self.samples],
            columns=list(ROLES),
        )
        frame.index.name = 'instance'
        return frame

    def __len__(self):
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)


def sort_durations(durations: Iterable[float]) -> List[float]:
    # sorted() is stable, ties keep their launch order
    return sorted(durations)


def mean(nums: Sequence[float]) -> float:
    first = nums[0]
    # Constant samples: avoid a rounded mean drifting off the value itself
    if all(num == first for num in nums):
        return first
    return math.fsum(nums) / len(nums)


def median(sorted_nums: Sequence[float]) -> float:
    """
    Element at ``n // 2`` of an already sorted sequence.

    For even ``n`` this is the upper-middle element, not the average of the
    two middle elements.
    """
    return sorted_nums[len(sorted_nums) // 2]


def high(sorted_nums: Sequence[float]) -> float:
    return sorted_nums[-1]


def low(sorted_nums: Sequence[float]) -> float:
    return sorted_nums[0]


def variance(nums: Sequence[float], mean_value: Optional[float] = None) -> float:
    """Population variance (mean of squared deviations)"""
    if mean_value is None:
        mean_value = mean(nums)
    return math.fsum((num - mean_value) ** 2 for num in nums) / len(nums)


def stdev(nums: Sequence[float]) -> float:
    return math.sqrt(variance(nums))


def top_five(sorted_nums: Sequence[float]) -> List[float]:
    return list(sorted_nums[-5:])


def bottom_five(sorted_nums: Sequence[float]) -> List[float]:
    return list(sorted_nums[:5])


@dataclass
class TransportStatistics:
    """Descriptive statistics of one transport's durations"""

    role: str
    durations: List[float]
    mean: float
    median: float
    high: float
    low: float
    variance: float
    stdev: float
    top_five: List[float]
    bottom_five: List[float]
    protocol: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.durations)


def compute_statistics(
    role: str,
    durations: Iterable[float],
    protocol: Optional[str] = None,
) -> TransportStatistics:
    """Compute the statistics of one transport from its raw durations"""
    sorted_durations = sort_durations(durations)
    if not sorted_durations:
        raise ValueError(f"No durations recorded for {role}")

    mean_value = mean(sorted_durations)
    variance_value = variance(sorted_durations, mean_value)

    return TransportStatistics(
        role=role,
        protocol=protocol,
        durations=sorted_durations,
        mean=mean_value,
        median=median(sorted_durations),
        high=high(sorted_durations),
        low=low(sorted_durations),
        variance=variance_value,
        stdev=math.sqrt(variance_value),
        top_five=top_five(sorted_durations),
        bottom_five=bottom_five(sorted_durations),
    )


def summarize(
    sample_set: SampleSet,
    protocols: Optional[Dict[str, str]] = None,
) -> Dict[str, TransportStatistics]:
    """Statistics for each transport, computed independently"""
    protocols = protocols or {}
    return {
        role: compute_statistics(role, sample_set.column(role), protocols.get(role))
        for role in ROLES
    }
