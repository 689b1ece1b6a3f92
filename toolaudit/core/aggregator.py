"""
Usage aggregation into fixed time buckets

Observations are summed per team and tool inside each bucket, and every
bucket resolves to at most one dominant tool per team.
"""
import logging
from typing import Dict, Iterable, List, Optional

from toolaudit.core.tools import TOOL_NAMES
from toolaudit.models import Observation
from toolaudit.utils import bucket_of


logger = logging.getLogger(__name__)

# bucket index -> team id -> tool name
DominantToolMap = Dict[int, Dict[str, str]]


def resolve_dominant_tool(cpu: List[float]) -> Optional[str]:
    """
    Dominant tool of one team's accumulator vector

    Scans in catalogue order and keeps the first strictly greater value, so an
    exact tie goes to the earlier tool. An all-zero vector has no dominant tool.

    Args:
        cpu: Accumulated CPU per tool, indexed like TOOL_NAMES

    Returns:
        Tool name, or None when nothing was used
    """
    best_index = -1
    best_value = 0.0
    for index, value in enumerate(cpu):
        if value > best_value:
            best_index = index
            best_value = value
    if best_index < 0:
        return None
    return TOOL_NAMES[best_index]


class UsageAggregator:
    """
    Folds observations into the dominant-tool timeline

    Attributes:
        width: Bucket width in seconds
        dominant: Bucket index -> {team: tool}; every bucket that received an
            observation is present, possibly with an empty mapping
    """

    def __init__(self, width: int = 600):
        self.width = width
        self.dominant: DominantToolMap = {}
        self._team_cpu: Dict[str, List[float]] = {}
        self._current: Optional[int] = None

    def _flush_bucket(self) -> None:
        if self._current is None:
            return
        top = {}
        for team, cpu in self._team_cpu.items():
            tool = resolve_dominant_tool(cpu)
            for i in range(len(cpu)):
                cpu[i] = 0.0
            if tool is not None:
                top[team] = tool
        self.dominant[self._current] = top

    def add(self, observation: Observation) -> None:
        """Add one observation; observations must arrive in time order"""
        bucket = bucket_of(observation.time, self.width)
        if bucket != self._current:
            self._flush_bucket()
            self._current = bucket
        cpu = self._team_cpu.setdefault(observation.team, [0.0] * len(TOOL_NAMES))
        cpu[TOOL_NAMES.index(observation.tool)] += observation.cpu

    def finish(self) -> DominantToolMap:
        self._flush_bucket()
        self._current = None
        return self.dominant


def aggregate(observations: Iterable[Observation], width: int = 600) -> DominantToolMap:
    """
    Build the dominant-tool timeline from observations of all teams

    Args:
        observations: Observations in any order
        width: Bucket width in seconds

    Returns:
        Bucket index -> {team: dominant tool name}
    """
    aggregator = UsageAggregator(width)
    ordered = sorted(observations, key=lambda o: o.time)
    for observation in ordered:
        aggregator.add(observation)
    result = aggregator.finish()
    logger.info(f"Aggregated {len(ordered)} observations into {len(result)} intervals of {width}s")
    return result


def tool_counts(dominant: DominantToolMap) -> Dict[int, Dict[str, int]]:
    """
    Number of teams per dominant tool in each bucket

    Buckets without any dominant tool are left out.
    """
    counts = {}
    for bucket in sorted(dominant):
        per_tool: Dict[str, int] = {}
        for tool in dominant[bucket].values():
            per_tool[tool] = per_tool.get(tool, 0) + 1
        if per_tool:
            counts[bucket] = per_tool
    return counts
