"""
Contest event feed reader

The feed is one JSON object per line with a `type` and a `data` payload.
Two schemas are seen in the wild:

- plain records, every record is an upsert;
- records with an `op` field ("create", "update", "delete"), where only
  creates of teams and submissions are applied.

Judgements are inspected in both schemas, since the second one delivers the
verdict as an update of the judgement.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set, Tuple

from toolaudit.core.tools import parse_language
from toolaudit.models import FeedSummary, Submission, Team
from toolaudit.utils import parse_iso_millis, team_id_sort_key


logger = logging.getLogger(__name__)

ACCEPTED_VERDICT = "AC"
CREATE_OP = "create"


class EventFeed:
    """
    Teams and submissions reconstructed from the event feed

    Attributes:
        teams: Team id -> Team
        submissions: Submission id -> Submission (later creates overwrite)
        accepted_pairs: (team id, problem id) pairs that already have an
            accepted submission
    """

    def __init__(self):
        self.teams: Dict[str, Team] = {}
        self.submissions: Dict[str, Submission] = {}
        self.accepted_pairs: Set[Tuple[str, str]] = set()
        self.skipped = 0

    @classmethod
    def from_file(cls, feed_path: str) -> "EventFeed":
        """
        Read an event feed file

        Raises:
            FileNotFoundError: If the feed file does not exist
        """
        path = Path(feed_path)
        if not path.exists():
            raise FileNotFoundError(f"Event feed not found: {feed_path}")

        logger.info(f"Reading {path}")
        feed = cls()
        with open(path, 'r', encoding='utf-8') as f:
            feed.ingest(f)
        return feed

    def ingest(self, lines: Iterable[str]) -> None:
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                self.skipped += 1
                continue
            if not isinstance(record, dict):
                self.skipped += 1
                continue
            try:
                self.apply(record)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                # Missing fields or unparsable values: skip the record
                self.skipped += 1
                logger.debug(f"Skipping record {record.get('id')}: {e!r}")

    def apply(self, record: Dict[str, Any]) -> None:
        """
        Apply one feed record

        Raises:
            KeyError, TypeError, ValueError: For records missing required
                fields or carrying unparsable values
        """
        record_type = record.get("type")
        data = record.get("data")
        if not isinstance(data, dict):
            return

        has_op = "op" in record
        is_create = record.get("op") == CREATE_OP

        if record_type == "teams":
            if has_op and not is_create:
                return
            self._apply_team(data)
        elif record_type == "submissions":
            if has_op and not is_create:
                return
            self._apply_submission(data, report_unknown=not has_op)
        elif record_type == "judgements":
            self._apply_judgement(data)

    def _apply_team(self, data: Dict[str, Any]) -> None:
        team_id = str(data["id"])
        self.teams[team_id] = Team(id=team_id, name=str(data["name"]))

    def _apply_submission(self, data: Dict[str, Any], report_unknown: bool) -> None:
        submission_id = str(data["id"])
        language_id = data["language_id"]
        language = parse_language(language_id)
        if language is None:
            if report_unknown:
                logger.warning(f"!!! Unknown language: {language_id} in run {submission_id}")
            return

        previous = self.submissions.get(submission_id)
        self.submissions[submission_id] = Submission(
            id=submission_id,
            team_id=str(data["team_id"]),
            problem_id=str(data["problem_id"]),
            language=language,
            time=parse_iso_millis(data["time"]),
            # A repeated create never takes back an acceptance
            accepted=previous.accepted if previous else False,
        )

    def _apply_judgement(self, data: Dict[str, Any]) -> None:
        if data.get("judgement_type_id") != ACCEPTED_VERDICT:
            return
        submission = self.submissions.get(str(data.get("submission_id")))
        if submission is None:
            return
        pair = (submission.team_id, submission.problem_id)
        if pair in self.accepted_pairs:
            return
        # First solve per (team, problem) wins
        self.accepted_pairs.add(pair)
        submission.accepted = True

    def team_name(self, team_id: str) -> Optional[str]:
        team = self.teams.get(team_id)
        return team.name if team else None

    def summary(self) -> FeedSummary:
        """Totals over every submission, including ones outside the snapshot range"""
        times = [s.time // 1000 for s in self.submissions.values()]
        return FeedSummary(
            teams=len(self.teams),
            submissions=len(self.submissions),
            accepted=sum(1 for s in self.submissions.values() if s.accepted),
            team_ids=sorted(self.teams, key=team_id_sort_key),
            min_time=min(times) if times else None,
            max_time=max(times) if times else None,
        )

    def log_summary(self) -> None:
        summary = self.summary()
        logger.info(f"{summary.teams} teams found")
        logger.info(f"{summary.submissions} submissions found, {summary.accepted} accepted")
        logger.info(f"Team ids: {summary.team_ids}")
        if summary.min_time is not None:
            logger.info(f"Submissions time range (seconds from epoch): {summary.min_time} - {summary.max_time}")
        if self.skipped:
            logger.info(f"{self.skipped} malformed feed records skipped")
