"""
Contest tool-usage audit - command line entry point

Pipeline, each stage fully materialized before the next:
1. Event feed -> teams, submissions, accepted flags
2. Process snapshots of every registered team -> observations
3. Observations -> dominant tool per team per interval
4. Submissions x dominant tools -> unexpected tools, language/tool counts
5. Reports into the result directory
"""
import argparse
import logging
import sys
import zipfile
from pathlib import Path
from typing import List, Optional

import yaml

from toolaudit.config import load_config
from toolaudit.core.aggregator import DominantToolMap, aggregate
from toolaudit.core.crossref import CrossReference, cross_reference
from toolaudit.core.eventfeed import EventFeed
from toolaudit.core.snapshots import SnapshotIngestor, SnapshotSource, team_of_unit
from toolaudit.models import AnalysisConfig, Observation
from toolaudit.services import reports
from toolaudit.utils import team_id_sort_key


logger = logging.getLogger(__name__)


class AnalysisResult:
    """Everything the reports are built from"""

    def __init__(
        self,
        feed: EventFeed,
        units: List[str],
        ingestor: SnapshotIngestor,
        dominant: DominantToolMap,
        crossref: Optional[CrossReference]
    ):
        self.feed = feed
        self.units = units
        self.ingestor = ingestor
        self.dominant = dominant
        self.crossref = crossref


def run_analysis(feed_path: str, snapshot_path: str, config: AnalysisConfig) -> AnalysisResult:
    """
    Run the whole analysis without writing reports

    Raises:
        FileNotFoundError: If the feed or the snapshot source is missing
    """
    feed = EventFeed.from_file(feed_path)
    feed.log_summary()

    ingestor = SnapshotIngestor(
        user_prefix=config.user_prefix,
        min_cpu=config.min_cpu,
        clean_commands=config.clean_commands,
    )
    observations: List[Observation] = []

    with SnapshotSource(snapshot_path) as source:
        found = source.units(config.snapshot_prefix, config.snapshot_suffix)
        units = sorted(
            (unit for unit in found
             if team_of_unit(unit, config.workstation_separator, feed.teams) in feed.teams),
            key=team_id_sort_key,
        )
        logger.info(f"Found {len(units)} team ps files")

        for unit in units:
            logger.info(f"Parsing {found[unit]}")
            team = team_of_unit(unit, config.workstation_separator, feed.teams)
            observations.extend(ingestor.parse(source.read_lines(found[unit]), unit, team))

    logger.info(f"Parsed ps files for {len(units)} teams")
    time_range = ingestor.time_range()
    if time_range is not None:
        logger.info(f"Found ps data in time range (seconds from epoch): {time_range[0]} - {time_range[1]}")

    dominant = aggregate(observations, config.interval_seconds)

    crossref = None
    if config.cross_reference:
        crossref = cross_reference(
            feed.submissions.values(), dominant,
            config.interval_seconds, config.workstation_separator, feed.teams
        )

    return AnalysisResult(feed, units, ingestor, dominant, crossref)


def write_reports(result: AnalysisResult, config: AnalysisConfig) -> None:
    result_dir = config.result_dir
    Path(result_dir).mkdir(parents=True, exist_ok=True)

    reports.write_unidentified_commands(result_dir, result.ingestor.unidentified)
    reports.write_tool_usage(
        result_dir, result.dominant, result.units,
        config.interval_seconds, config.timezone
    )
    if result.crossref is not None:
        reports.write_mismatches(result_dir, result.crossref.mismatches)
        reports.write_contingency(result_dir, reports.LANGS_SUBMITTED_FILE, result.crossref.submitted)
        reports.write_contingency(result_dir, reports.LANGS_ACCEPTED_FILE, result.crossref.accepted)

    names = {
        unit: result.feed.team_name(
            team_of_unit(unit, config.workstation_separator, result.feed.teams)
        ) or ""
        for unit in result.units
    }
    reports.write_team_names(result_dir, result.units, names)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolaudit",
        description="Cross-check contest submissions against the tools teams were running",
    )
    parser.add_argument("event_feed", help="JSON file with event feed")
    parser.add_argument("tool_backup", help="ZIP file or directory with 'ps.team<team>.txt' files")
    parser.add_argument("--config", default=None, help="YAML file overriding the default settings")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        result = run_analysis(args.event_feed, args.tool_backup, config)
        write_reports(result, config)
    except (OSError, zipfile.BadZipFile) as e:
        logger.error(f"❌ Analysis failed: {e}")
        return 1

    logger.info(f"✅ Reports written to {config.result_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
