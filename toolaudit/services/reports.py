"""
Report writers - CSV and text files in the result directory
"""
import csv
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List
from zoneinfo import ZoneInfo

from toolaudit.core.aggregator import DominantToolMap, tool_counts
from toolaudit.core.crossref import ContingencyTable
from toolaudit.core.tools import TOOL_NAMES, TOOLS_WITH_UNKNOWN
from toolaudit.models import LANGUAGES, MismatchRecord


logger = logging.getLogger(__name__)

UNIDENTIFIED_TOOLS_FILE = "icpc-unidentified-tools.txt"
UNEXPECTED_SUBMISSION_TOOLS_FILE = "icpc-unexpected-submission-tools.txt"
TOOLS_FILE = "icpc-tools.csv"
TEAMS_TIME_FILE = "icpc-teams-time.csv"
TEAMS_NAME_FILE = "icpc-teams-name.csv"
LANGS_SUBMITTED_FILE = "icpc-langs-submitted.csv"
LANGS_ACCEPTED_FILE = "icpc-langs-accepted.csv"

NO_TOOL = "--"


def format_bucket(bucket: int, width: int, timezone: str) -> str:
    """
    Label of a bucket as HH:MM of its start time in the contest timezone

    Example:
        >>> format_bucket(0, 600, "UTC")
        '00:00'
    """
    start = datetime.fromtimestamp(bucket * width, tz=ZoneInfo(timezone))
    return start.strftime("%H:%M")


@contextmanager
def open_report(result_dir: str, file_name: str):
    path = Path(result_dir) / file_name
    logger.info(f"Writing {path} ...")
    with open(path, 'w', encoding='utf-8', newline='') as f:
        yield f


def write_unidentified_commands(result_dir: str, commands: Iterable[str]) -> None:
    with open_report(result_dir, UNIDENTIFIED_TOOLS_FILE) as f:
        for command in sorted(commands):
            f.write(command + "\n")


def write_tool_usage(
    result_dir: str,
    dominant: DominantToolMap,
    teams: List[str],
    width: int,
    timezone: str
) -> None:
    """
    Write per-interval tool counts and per-interval dominant tool per team

    Intervals without any detected activity are left out of both files.
    """
    counts = tool_counts(dominant)
    with open_report(result_dir, TOOLS_FILE) as tools_out, \
            open_report(result_dir, TEAMS_TIME_FILE) as teams_out:
        tools_writer = csv.writer(tools_out, lineterminator="\n")
        teams_writer = csv.writer(teams_out, lineterminator="\n")
        tools_writer.writerow(["TIME"] + TOOL_NAMES)
        teams_writer.writerow(["TIME"] + teams)
        for bucket, per_tool in counts.items():
            label = format_bucket(bucket, width, timezone)
            top = dominant[bucket]
            tools_writer.writerow([label] + [per_tool.get(name, 0) for name in TOOL_NAMES])
            teams_writer.writerow([label] + [top.get(team, NO_TOOL) for team in teams])


def write_team_names(result_dir: str, teams: List[str], names: Dict[str, str]) -> None:
    with open_report(result_dir, TEAMS_NAME_FILE) as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(["TEAM", "NAME"])
        for team in teams:
            writer.writerow([team, names.get(team, "")])


def write_contingency(result_dir: str, file_name: str, table: ContingencyTable) -> None:
    """Language x tool counts, languages in fixed order, empty languages omitted"""
    with open_report(result_dir, file_name) as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(["LANG"] + [tool.name for tool in TOOLS_WITH_UNKNOWN])
        for language in LANGUAGES:
            row = table.get(language)
            if row is not None:
                writer.writerow([language.value] + row)


def write_mismatches(result_dir: str, mismatches: Iterable[MismatchRecord]) -> None:
    with open_report(result_dir, UNEXPECTED_SUBMISSION_TOOLS_FILE) as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(["TIME", "TEAM", "LANGUAGE", "TOOL"])
        for m in mismatches:
            writer.writerow([m.time, m.team_id, m.language.value, m.tool])
