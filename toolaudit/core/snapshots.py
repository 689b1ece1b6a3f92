"""
Process snapshot parsing

A snapshot file holds repeating blocks: a line with a bare epoch-seconds
timestamp, followed by process-table rows:

    USER PID %CPU %MEM VSZ RSS TTY STAT START TIME COMMAND
    0    1   2    3    4   5   6   7    8     9    10

COMMAND is the rest of the row and may contain spaces.
"""
import io
import logging
import zipfile
from pathlib import Path
from typing import Container, Dict, Iterable, Iterator, List, Optional, Set

from toolaudit.core.tools import TOOL_NAMES, UNKNOWN, classify
from toolaudit.models import Observation


logger = logging.getLogger(__name__)

COLUMNS = 11
CPU_COLUMN = 2

# Leading launcher tokens dropped before classification
SHELL_WRAPPERS = ("/bin/bash -c ", "/bin/sh -c ", "bash -c ", "sh -c ", "env ")

# Arguments that differ between machines; the command is cut at the first one
VOLATILE_MARKERS = (
    "/home/", "/tmp/",
    "--type=", "--no-sandbox", "--user-data-dir", "--field-trial-handle",
)


def clean_command(command: str) -> str:
    """
    Normalize a command line so that the same logical command on different
    machines classifies the same way

    Example:
        >>> clean_command("/bin/sh -c '/usr/share/code/code --type=renderer /home/team7/a.cpp'")
        '/usr/share/code/code'
    """
    for wrapper in SHELL_WRAPPERS:
        if command.startswith(wrapper):
            command = command[len(wrapper):].strip().strip("'\"")
            break

    tokens = command.split()
    if not tokens:
        return ""

    kept = [tokens[0]]
    for token in tokens[1:]:
        if token.strip("'\"").startswith(VOLATILE_MARKERS):
            break
        kept.append(token)
    return " ".join(kept)


class SnapshotIngestor:
    """
    Turns snapshot text into per-tool Observations

    One ingestor is shared by all snapshot units of a run so that the
    unidentified commands and the observed time range cover all teams.
    """

    def __init__(self, user_prefix: str = "team", min_cpu: float = 0.01, clean_commands: bool = False):
        self.user_prefix = user_prefix
        self.min_cpu = min_cpu
        self.clean_commands = clean_commands
        self.unidentified: Set[str] = set()
        self.times: List[int] = []

    def parse(self, lines: Iterable[str], unit_id: str, team_id: Optional[str] = None) -> List[Observation]:
        """
        Parse one snapshot unit

        Args:
            lines: Snapshot text, line by line
            unit_id: Team or team-workstation id the observations are recorded under
            team_id: Team whose processes are counted (defaults to unit_id)

        Returns:
            Observations in non-decreasing time order, one per (time, tool)
        """
        user = f"{self.user_prefix}{team_id if team_id is not None else unit_id}"
        observations: List[Observation] = []
        tool_cpu: Dict[str, float] = {}
        time: Optional[int] = None

        def flush():
            if time is None:
                return
            self.times.append(time)
            for name in TOOL_NAMES:
                value = tool_cpu.get(name, 0.0)
                if value != 0.0:
                    observations.append(Observation(time=time, team=unit_id, tool=name, cpu=value))
            tool_cpu.clear()

        for line in lines:
            line = line.rstrip()
            stripped = line.strip()
            if stripped.isascii() and stripped.isdigit():
                stamp = int(stripped)
                # A repeated timestamp continues the current block
                if stamp != time:
                    flush()
                    time = stamp
                continue

            tokens = line.split(None, COLUMNS - 1)
            if len(tokens) < COLUMNS or tokens[0] != user:
                continue
            try:
                cpu = float(tokens[CPU_COLUMN])
            except ValueError:
                logger.debug(f"Skipping row with bad %CPU in {unit_id}: {line}")
                continue

            command = tokens[COLUMNS - 1]
            if self.clean_commands:
                command = clean_command(command)
            tool = classify(command)
            if tool is UNKNOWN:
                self.unidentified.add(command)
                continue
            # Non-zero marks "used this tick" even when ps reports 0.0
            tool_cpu[tool.name] = max(tool_cpu.get(tool.name, 0.0) + cpu, self.min_cpu)

        flush()
        return observations

    def time_range(self):
        """(min, max) snapshot time in epoch seconds, or None if nothing was read"""
        if not self.times:
            return None
        return min(self.times), max(self.times)


def unit_id_from_name(name: str, prefix: str = "ps.team", suffix: str = ".txt") -> Optional[str]:
    """
    Extract the unit id from a snapshot file name

    Example:
        >>> unit_id_from_name("backup/ps.team42.txt")
        '42'
    """
    base = name.rsplit("/", 1)[-1]
    if not base.startswith(prefix) or not base.endswith(suffix):
        return None
    unit_id = base[len(prefix):len(base) - len(suffix)]
    return unit_id or None


def team_of_unit(unit_id: str, separator: str = "-", teams: Optional[Container[str]] = None) -> str:
    """
    Team id of a team or team-workstation unit id ("42-2" -> "42")

    A unit id that is itself a registered team is never split, so team ids
    containing the separator ("team-a") keep working.
    """
    if teams is not None and unit_id in teams:
        return unit_id
    if separator and separator in unit_id:
        return unit_id.split(separator, 1)[0]
    return unit_id


class SnapshotSource:
    """
    Snapshot files in a directory or a ZIP archive

    Raises:
        FileNotFoundError: If the path does not exist
        zipfile.BadZipFile: If a file path is not a readable archive
    """

    def __init__(self, path: str):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Snapshot source not found: {path}")
        self._zip = None if self.path.is_dir() else zipfile.ZipFile(self.path)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()

    def entry_names(self) -> List[str]:
        if self._zip is not None:
            return [info.filename for info in self._zip.infolist() if not info.is_dir()]
        return [str(p.relative_to(self.path)).replace("\\", "/")
                for p in sorted(self.path.rglob("*")) if p.is_file()]

    def units(self, prefix: str = "ps.team", suffix: str = ".txt") -> Dict[str, str]:
        """Map unit id -> entry name for every entry matching the naming pattern"""
        found = {}
        for name in self.entry_names():
            unit_id = unit_id_from_name(name, prefix, suffix)
            if unit_id is not None:
                found[unit_id] = name
        return found

    def read_lines(self, name: str) -> Iterator[str]:
        if self._zip is not None:
            with self._zip.open(name) as raw:
                with io.TextIOWrapper(raw, encoding="utf-8", errors="replace") as f:
                    yield from f
        else:
            with open(self.path / name, 'r', encoding='utf-8', errors='replace') as f:
                yield from f
