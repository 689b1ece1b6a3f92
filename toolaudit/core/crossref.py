"""
Cross-reference of submissions against the dominant-tool timeline
"""
import logging
from typing import Container, Dict, Iterable, List, Optional

from toolaudit.core.aggregator import DominantToolMap
from toolaudit.core.tools import TOOLS_WITH_UNKNOWN, UNKNOWN, expected_languages, get_tool
from toolaudit.models import Language, MismatchRecord, Submission
from toolaudit.utils import bucket_of_millis


logger = logging.getLogger(__name__)

# language -> counts indexed like TOOLS_WITH_UNKNOWN
ContingencyTable = Dict[Language, List[int]]


class CrossReference:
    """
    Result of joining submissions with the dominant-tool timeline

    Attributes:
        mismatches: Submissions in a language the attributed tool does not expect
        submitted: Language x tool counts over all in-range submissions
        accepted: Language x tool counts over accepted in-range submissions
        excluded: Number of submissions outside the snapshot range
    """

    def __init__(self):
        self.mismatches: List[MismatchRecord] = []
        self.submitted: ContingencyTable = {}
        self.accepted: ContingencyTable = {}
        self.excluded = 0

    def count(self, language: Language, tool_index: int, accepted: bool) -> None:
        tables = [self.submitted, self.accepted] if accepted else [self.submitted]
        for table in tables:
            row = table.setdefault(language, [0] * len(TOOLS_WITH_UNKNOWN))
            row[tool_index] += 1


def attributed_tool(
    team_tools: Dict[str, str],
    team_id: str,
    separator: str = "-",
    teams: Optional[Container[str]] = None
) -> Optional[str]:
    """
    Dominant tool of a team in one bucket, falling back to its workstation units

    Unit ids that are registered teams themselves ("1-b" next to team "1")
    belong to that team, not to a workstation of "1".
    """
    if team_id in team_tools:
        return team_tools[team_id]
    if not separator:
        return None
    unit_prefix = team_id + separator
    for unit in sorted(team_tools):
        if unit.startswith(unit_prefix) and not (teams is not None and unit in teams):
            return team_tools[unit]
    return None


def cross_reference(
    submissions: Iterable[Submission],
    dominant: DominantToolMap,
    width: int = 600,
    workstation_separator: str = "-",
    teams: Optional[Container[str]] = None
) -> CrossReference:
    """
    Attribute each submission to the tool its team was running

    Logic:
    1. bucket = floor(submission time / width)
    2. Bucket not in the timeline -> submission is out of range, skipped
    3. Attributed tool = team's dominant tool in that bucket (or that of its
       first workstation with one), else Unknown
    4. Language not expected for the tool -> mismatch
    5. Count (language, tool) as submitted, and as accepted if accepted

    Args:
        submissions: Submissions from the event feed
        dominant: Bucket index -> {team: tool name}
        width: Bucket width in seconds
        workstation_separator: Separator between team and workstation in unit ids
        teams: Registered team ids, never taken for workstation units

    Returns:
        CrossReference with mismatches and contingency tables
    """
    result = CrossReference()
    tool_index = {tool.name: i for i, tool in enumerate(TOOLS_WITH_UNKNOWN)}

    for submission in submissions:
        team_tools = dominant.get(bucket_of_millis(submission.time, width))
        if team_tools is None:
            result.excluded += 1
            continue

        name = attributed_tool(team_tools, submission.team_id, workstation_separator, teams)
        tool = get_tool(name) if name is not None else UNKNOWN
        if submission.language not in expected_languages(tool):
            result.mismatches.append(MismatchRecord(
                time=submission.time // 1000,
                team_id=submission.team_id,
                language=submission.language,
                tool=tool.name,
            ))

        result.count(submission.language, tool_index[tool.name], submission.accepted)

    logger.info(
        f"Cross-referenced submissions: {len(result.mismatches)} unexpected tools, "
        f"{result.excluded} outside the snapshot range"
    )
    return result
