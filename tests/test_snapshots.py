"""
Tests for process snapshot parsing
"""
import zipfile

import pytest
from toolaudit.core.snapshots import (
    SnapshotIngestor,
    SnapshotSource,
    clean_command,
    team_of_unit,
    unit_id_from_name
)


def row(user, cpu, command):
    """Process-table row: USER PID %CPU %MEM VSZ RSS TTY STAT START TIME COMMAND"""
    return f"{user} 4242 {cpu} 1.2 123456 65432 ? Sl 10:00 0:12 {command}"


def test_flush_stamps_previous_timestamp():
    """Usage is recorded under the timestamp of the block it was read in"""
    lines = [
        "1000",
        row("team7", "12.5", "/opt/clion/bin/clion.sh"),
        "1010",
        row("team7", "3.0", "/usr/bin/gedit a.c"),
    ]
    observations = SnapshotIngestor().parse(lines, "7")
    assert [(o.time, o.tool, o.cpu) for o in observations] == [
        (1000, "CLion", 12.5),
        (1010, "GEdit", 3.0),
    ]
    assert all(o.team == "7" for o in observations)


def test_same_tool_in_one_block_is_summed():
    """Several processes of one tool in one tick fold into one observation"""
    lines = [
        "1000",
        row("team7", "10.0", "/usr/share/code/code"),
        row("team7", "5.5", "/usr/share/code/code --type=renderer"),
        row("team7", "1.0", "vim x.py"),
    ]
    observations = SnapshotIngestor().parse(lines, "7")
    assert [(o.time, o.tool, o.cpu) for o in observations] == [
        (1000, "Vim", 1.0),
        (1000, "VSCode", 15.5),
    ]


def test_idle_tool_is_clamped_positive():
    """A running tool with 0.0% CPU still counts as used"""
    lines = ["1000", row("team7", "0.0", "nano a.py")]
    observations = SnapshotIngestor().parse(lines, "7")
    assert len(observations) == 1
    assert observations[0].cpu == 0.01


def test_other_users_are_ignored():
    """Only processes owned by the team's user are counted"""
    lines = [
        "1000",
        row("root", "50.0", "/usr/bin/emacs"),
        row("team70", "50.0", "/usr/bin/emacs"),
        row("team7", "2.0", "/usr/bin/kate"),
    ]
    observations = SnapshotIngestor().parse(lines, "7")
    assert [o.tool for o in observations] == ["Kate"]


def test_malformed_rows_are_skipped():
    """Short rows and non-numeric CPU do not abort parsing"""
    lines = [
        "1000",
        "team7 4242 1.0 truncated",
        row("team7", "n/a", "/usr/bin/geany"),
        row("team7", "4.0", "/usr/bin/geany"),
    ]
    observations = SnapshotIngestor().parse(lines, "7")
    assert [(o.tool, o.cpu) for o in observations] == [("Geany", 4.0)]


def test_rows_before_first_timestamp_are_dropped():
    """Usage without a timestamp is never emitted"""
    lines = [row("team7", "4.0", "/usr/bin/geany")]
    assert SnapshotIngestor().parse(lines, "7") == []


def test_unidentified_commands_are_collected():
    """Unclassified commands go to the side set, not into observations"""
    ingestor = SnapshotIngestor()
    lines = ["1000", row("team7", "30.0", "/usr/lib/firefox/firefox")]
    assert ingestor.parse(lines, "7") == []
    assert ingestor.unidentified == {"/usr/lib/firefox/firefox"}


def test_one_observation_per_time_and_tool():
    """No (time, tool) pair is ever emitted twice"""
    lines = ["1000"]
    lines += [row("team7", "1.0", "/usr/bin/vim") for _ in range(5)]
    lines += ["1005"]
    lines += [row("team7", "1.0", "/usr/bin/vim") for _ in range(3)]
    observations = SnapshotIngestor().parse(lines, "7")
    keys = [(o.time, o.tool) for o in observations]
    assert len(keys) == len(set(keys))
    assert [o.time for o in observations] == sorted(o.time for o in observations)


def test_time_range_covers_all_blocks():
    """Empty blocks still widen the observed time range"""
    ingestor = SnapshotIngestor()
    ingestor.parse(["900", "1000", row("team7", "1.0", "nano")], "7")
    assert ingestor.time_range() == (900, 1000)


def test_workstation_unit_counts_team_user():
    """A team-workstation unit counts the team's user but records the unit id"""
    lines = ["1000", row("team7", "1.0", "nano")]
    observations = SnapshotIngestor().parse(lines, "7-2", team_id="7")
    assert observations[0].team == "7-2"


def test_clean_command():
    """Shell wrappers and machine-specific arguments are stripped"""
    assert clean_command("bash -c '/usr/bin/codeblocks /home/team7/a.cbp'") == "/usr/bin/codeblocks"
    assert clean_command("/usr/share/code/code --no-sandbox --unity-launch") == "/usr/share/code/code"
    assert clean_command("/usr/bin/gedit notes.txt") == "/usr/bin/gedit notes.txt"
    assert clean_command("   ") == ""


def test_cleaning_makes_wrapped_command_classify():
    """With cleaning on, a wrapped launch classifies like the plain one"""
    lines = ["1000", row("team7", "1.0", "/bin/sh -c /usr/bin/geany /tmp/x.c")]
    assert SnapshotIngestor().parse(lines, "7") == []
    observations = SnapshotIngestor(clean_commands=True).parse(lines, "7")
    assert [o.tool for o in observations] == ["Geany"]


def test_unit_id_from_name():
    """Only names following the prefix/suffix pattern yield a unit id"""
    assert unit_id_from_name("ps.team12.txt") == "12"
    assert unit_id_from_name("backup/2022/ps.team12-3.txt") == "12-3"
    assert unit_id_from_name("ps.team.txt") is None
    assert unit_id_from_name("notes.txt") is None
    assert unit_id_from_name("snap_12.log", prefix="snap_", suffix=".log") == "12"


def test_team_of_unit():
    assert team_of_unit("12") == "12"
    assert team_of_unit("12-3") == "12"
    assert team_of_unit("12-3", separator="") == "12-3"


def test_source_from_directory(tmp_path):
    """Snapshot files are discovered in a directory"""
    (tmp_path / "ps.team1.txt").write_text("1000\n", encoding="utf-8")
    (tmp_path / "readme.md").write_text("x", encoding="utf-8")
    with SnapshotSource(str(tmp_path)) as source:
        units = source.units()
        assert units == {"1": "ps.team1.txt"}
        assert list(source.read_lines(units["1"])) == ["1000\n"]


def test_source_from_zip(tmp_path):
    """Snapshot files are discovered inside an archive"""
    archive = tmp_path / "backup.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("backup/ps.team3.txt", "1000\n")
        zf.writestr("backup/other.txt", "")
    with SnapshotSource(str(archive)) as source:
        units = source.units()
        assert units == {"3": "backup/ps.team3.txt"}
        assert list(source.read_lines(units["3"])) == ["1000\n"]


def test_missing_source_is_fatal(tmp_path):
    """A missing snapshot source raises"""
    with pytest.raises(FileNotFoundError):
        SnapshotSource(str(tmp_path / "missing.zip"))


def test_repeated_timestamp_continues_block():
    """Concatenated dumps repeating a timestamp still give one observation per tool"""
    lines = [
        "1000",
        row("team7", "1.0", "/usr/bin/vim"),
        "1000",
        row("team7", "2.0", "/usr/bin/vim"),
    ]
    observations = SnapshotIngestor().parse(lines, "7")
    assert [(o.time, o.tool, o.cpu) for o in observations] == [(1000, "Vim", 3.0)]


def test_non_ascii_digit_line_is_skipped():
    """A corrupt line of Unicode digits is noise, not a timestamp"""
    lines = ["1000", "²", row("team7", "4.0", "/usr/bin/geany")]
    observations = SnapshotIngestor().parse(lines, "7")
    assert [(o.time, o.tool) for o in observations] == [(1000, "Geany")]


def test_registered_team_id_with_separator_is_not_split():
    """A unit id that is a registered team keeps its hyphen"""
    teams = {"team-a", "12"}
    assert team_of_unit("team-a", teams=teams) == "team-a"
    assert team_of_unit("12-3", teams=teams) == "12"
    assert team_of_unit("team-b", teams=teams) == "team"
