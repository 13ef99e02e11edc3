"""Integration tests for the rankvote CLI."""

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from src.cli.vote import cli
from src.rankset import RankedSet, SaveFormat, SelectionMetrics
from src.rankset.constants import U32_MAX
from src.rankset.persistence import detect_format
from tests.helpers.entries import make_entry, make_set


ENV_VARS = [
    "RANKVOTE_STRATEGY",
    "RANKVOTE_FORMAT",
    "RANKVOTE_SEED",
    "RANKVOTE_JSON_LOGS",
    "RANKVOTE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Isolate tests from RANKVOTE_* variables and shared metrics."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    SelectionMetrics.reset()
    yield
    SelectionMetrics.reset()


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def save_path(tmp_path: Path) -> Path:
    """Save file with two fresh entries."""
    path = tmp_path / "save.json"
    RankedSet.create(["alpha", "beta"]).save(path)
    return path


def _load(path: Path) -> RankedSet:
    return RankedSet.load(path)


class TestInitCommand:
    """Tests for the init command."""

    @pytest.mark.integration
    def test_init_from_names(self, runner: CliRunner, tmp_path: Path) -> None:
        """A names file becomes a fresh JSON save file."""
        names = tmp_path / "names.txt"
        names.write_text("a\nb\n\nc\n", encoding="utf-8")
        out = tmp_path / "save.json"

        result = runner.invoke(cli, ["init", str(names), str(out)])

        assert result.exit_code == 0, result.output
        assert "Created" in result.output
        assert _load(out) == RankedSet.create(["a", "b", "c"])
        assert detect_format(out) == SaveFormat.JSON

    @pytest.mark.integration
    def test_init_binary_format(self, runner: CliRunner, tmp_path: Path) -> None:
        """--format binary writes the legacy layout."""
        names = tmp_path / "names.txt"
        names.write_text("a\n", encoding="utf-8")
        out = tmp_path / "save.bin"

        result = runner.invoke(cli, ["init", "--format", "binary", str(names), str(out)])

        assert result.exit_code == 0, result.output
        assert detect_format(out) == SaveFormat.BINARY

    @pytest.mark.integration
    def test_init_format_from_env(
        self, runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """RANKVOTE_FORMAT sets the default format."""
        monkeypatch.setenv("RANKVOTE_FORMAT", "binary")
        names = tmp_path / "names.txt"
        names.write_text("a\n", encoding="utf-8")
        out = tmp_path / "save"

        result = runner.invoke(cli, ["init", str(names), str(out)])

        assert result.exit_code == 0, result.output
        assert detect_format(out) == SaveFormat.BINARY

    @pytest.mark.integration
    def test_init_refuses_overwrite(
        self, runner: CliRunner, tmp_path: Path, save_path: Path
    ) -> None:
        """An existing save file is kept unless --force is given."""
        names = tmp_path / "names.txt"
        names.write_text("z\n", encoding="utf-8")

        result = runner.invoke(cli, ["init", str(names), str(save_path)])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert len(_load(save_path)) == 2

        result = runner.invoke(cli, ["init", "--force", str(names), str(save_path)])

        assert result.exit_code == 0, result.output
        assert _load(save_path) == RankedSet.create(["z"])


class TestShowCommand:
    """Tests for the show command."""

    @pytest.mark.integration
    def test_show_sorted(self, runner: CliRunner, tmp_path: Path) -> None:
        """Entries are listed best first with their rank."""
        path = tmp_path / "save.json"
        make_set(
            make_entry("low", wins=1, votes=4),
            make_entry("high", wins=3, votes=4, locked=True),
            make_entry("new"),
        ).save(path)

        result = runner.invoke(cli, ["show", str(path)])

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "1. high - 3/4 - 75.0% [L]",
            "2. low - 1/4 - 25.0%",
            "3. new - 0/0 - nan%",
        ]

    @pytest.mark.integration
    def test_show_unsorted(self, runner: CliRunner, tmp_path: Path) -> None:
        """--unsorted keeps file order."""
        path = tmp_path / "save.json"
        make_set(make_entry("low", wins=1, votes=4), make_entry("high", 3, 4)).save(
            path
        )

        result = runner.invoke(cli, ["show", "--unsorted", str(path)])

        assert result.exit_code == 0, result.output
        assert result.output.splitlines()[0] == "1. low - 1/4 - 25.0%"

    @pytest.mark.integration
    def test_show_foreign_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """A file that is not a save file exits with an error."""
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")

        result = runner.invoke(cli, ["show", str(path)])

        assert result.exit_code == 1
        assert "Not a recognized save file" in result.output

    @pytest.mark.integration
    def test_show_damaged_prefix(self, runner: CliRunner, tmp_path: Path) -> None:
        """A binary save with a wrong prefix is reported as unrecognized."""
        path = tmp_path / "save.bin"
        RankedSet.create(["abc"]).save(path, SaveFormat.BINARY)
        path.write_bytes(b"\x00\x00" + path.read_bytes()[2:])

        result = runner.invoke(cli, ["show", str(path)])

        assert result.exit_code == 1
        assert "Not a recognized save file" in result.output
        assert "prefix 0000" in result.output

    @pytest.mark.integration
    def test_show_invalid_json(self, runner: CliRunner, tmp_path: Path) -> None:
        """A JSON array with bad records is a decode failure."""
        path = tmp_path / "save.json"
        path.write_bytes(b'[{"w":1}]')

        result = runner.invoke(cli, ["show", str(path)])

        assert result.exit_code == 1
        assert "Failed to decode" in result.output

    @pytest.mark.integration
    def test_show_truncated_binary(self, runner: CliRunner, tmp_path: Path) -> None:
        """A damaged binary file exits with an error."""
        path = tmp_path / "save.bin"
        path.write_bytes(b"\xad\x2a\x01")

        result = runner.invoke(cli, ["show", str(path)])

        assert result.exit_code == 1
        assert "unexpected end of file" in result.output


class TestEditCommands:
    """Tests for add, remove, lock, unlock and reset."""

    @pytest.mark.integration
    def test_add_skips_duplicates(self, runner: CliRunner, save_path: Path) -> None:
        """New names are appended and existing ones skipped."""
        result = runner.invoke(cli, ["add", str(save_path), "gamma", "alpha"])

        assert result.exit_code == 0, result.output
        assert "Added 1 entries." in result.output
        assert [e.name for e in _load(save_path)] == ["alpha", "beta", "gamma"]

    @pytest.mark.integration
    def test_remove(self, runner: CliRunner, save_path: Path) -> None:
        """Named entries are removed; unknown names are reported."""
        result = runner.invoke(cli, ["remove", str(save_path), "alpha", "missing"])

        assert result.exit_code == 0, result.output
        assert "Removed 1 entries." in result.output
        assert "no entry named 'missing'" in result.output
        assert [e.name for e in _load(save_path)] == ["beta"]

    @pytest.mark.integration
    def test_lock_and_unlock(self, runner: CliRunner, save_path: Path) -> None:
        """Lock flags are persisted."""
        result = runner.invoke(cli, ["lock", str(save_path), "beta"])

        assert result.exit_code == 0, result.output
        assert [e.locked for e in _load(save_path)] == [False, True]

        result = runner.invoke(cli, ["unlock", str(save_path), "beta"])

        assert result.exit_code == 0, result.output
        assert "Unlocked 1 entries." in result.output
        assert [e.locked for e in _load(save_path)] == [False, False]

    @pytest.mark.integration
    def test_reset(self, runner: CliRunner, tmp_path: Path) -> None:
        """Reset clears counters after confirmation."""
        path = tmp_path / "save.json"
        make_set(make_entry("a", wins=2, votes=3, locked=True)).save(path)

        result = runner.invoke(cli, ["reset", str(path)], input="y\n")

        assert result.exit_code == 0, result.output
        entry = _load(path)[0]
        assert (entry.wins, entry.votes, entry.locked) == (0, 0, False)

    @pytest.mark.integration
    def test_reset_aborted(self, runner: CliRunner, tmp_path: Path) -> None:
        """Declining the prompt leaves the file untouched."""
        path = tmp_path / "save.json"
        make_set(make_entry("a", wins=2, votes=3)).save(path)

        result = runner.invoke(cli, ["reset", str(path)], input="n\n")

        assert result.exit_code == 1
        assert _load(path)[0].votes == 3


class TestConvertCommand:
    """Tests for the convert command."""

    @pytest.mark.integration
    def test_json_to_binary_and_back(self, runner: CliRunner, tmp_path: Path) -> None:
        """Conversion keeps every field."""
        src = tmp_path / "save.json"
        binary = tmp_path / "save.bin"
        back = tmp_path / "back.json"
        make_set(make_entry("a", wins=1, votes=2, locked=True)).save(src)

        result = runner.invoke(cli, ["convert", "--to", "binary", str(src), str(binary)])
        assert result.exit_code == 0, result.output
        assert "(json)" in result.output

        result = runner.invoke(cli, ["convert", "--to", "json", str(binary), str(back)])
        assert result.exit_code == 0, result.output

        assert back.read_bytes() == src.read_bytes()


class TestVoteCommand:
    """Tests for the interactive vote session."""

    @pytest.mark.integration
    def test_single_vote(self, runner: CliRunner, save_path: Path) -> None:
        """One answer records one vote and saves it."""
        result = runner.invoke(
            cli,
            ["vote", str(save_path), "--strategy", "random", "--seed", "1"],
            input="1\nq\n",
        )

        assert result.exit_code == 0, result.output
        assert "Recorded 1 votes." in result.output
        entries = list(_load(save_path))
        assert [e.votes for e in entries] == [1, 1]
        assert sum(e.wins for e in entries) == 1

    @pytest.mark.integration
    def test_winner_is_displayed_choice(
        self, runner: CliRunner, save_path: Path
    ) -> None:
        """Answering 2 credits the entry shown second."""
        result = runner.invoke(
            cli,
            ["vote", str(save_path), "--seed", "3", "--rounds", "1"],
            input="2\n",
        )

        assert result.exit_code == 0, result.output
        second_line = next(
            line for line in result.output.splitlines() if line.startswith("  [2] ")
        )
        winner = second_line.removeprefix("  [2] ")
        wins = {e.name: e.wins for e in _load(save_path)}
        assert wins[winner] == 1

    @pytest.mark.integration
    def test_rounds_limit(self, runner: CliRunner, save_path: Path) -> None:
        """--rounds stops the session after that many votes."""
        result = runner.invoke(
            cli,
            ["vote", str(save_path), "--rounds", "3", "--seed", "0"],
            input="1\n2\n1\n",
        )

        assert result.exit_code == 0, result.output
        assert "Recorded 3 votes." in result.output
        assert [e.votes for e in _load(save_path)] == [3, 3]

    @pytest.mark.integration
    def test_skip_does_not_count(self, runner: CliRunner, save_path: Path) -> None:
        """Skipped pairs are not recorded."""
        result = runner.invoke(
            cli,
            ["vote", str(save_path), "--rounds", "1"],
            input="s\n1\n",
        )

        assert result.exit_code == 0, result.output
        assert [e.votes for e in _load(save_path)] == [1, 1]

    @pytest.mark.integration
    def test_invalid_answer_reprompts(
        self, runner: CliRunner, save_path: Path
    ) -> None:
        """Unknown answers are rejected and asked again."""
        result = runner.invoke(
            cli,
            ["vote", str(save_path), "--rounds", "1"],
            input="maybe\n1\n",
        )

        assert result.exit_code == 0, result.output
        assert "Recorded 1 votes." in result.output

    @pytest.mark.integration
    def test_lock_ends_session_with_two_entries(
        self, runner: CliRunner, save_path: Path
    ) -> None:
        """Locking one of two entries leaves no pair to vote on."""
        result = runner.invoke(cli, ["vote", str(save_path)], input="l1\n")

        assert result.exit_code == 0, result.output
        assert "No pair available" in result.output
        assert "Recorded 0 votes." in result.output
        assert sum(e.locked for e in _load(save_path)) == 1

    @pytest.mark.integration
    def test_nothing_to_vote_on(self, runner: CliRunner, tmp_path: Path) -> None:
        """A set with one unlocked entry ends immediately."""
        path = tmp_path / "save.json"
        make_set(make_entry("a"), make_entry("b", locked=True)).save(path)

        result = runner.invoke(cli, ["vote", str(path)])

        assert result.exit_code == 0, result.output
        assert "No pair available" in result.output

    @pytest.mark.integration
    def test_binary_file_stays_binary(self, runner: CliRunner, tmp_path: Path) -> None:
        """Votes are saved in the format the file was loaded from."""
        path = tmp_path / "save.bin"
        RankedSet.create(["a", "b"]).save(path, SaveFormat.BINARY)

        result = runner.invoke(cli, ["vote", str(path), "--rounds", "1"], input="1\n")

        assert result.exit_code == 0, result.output
        assert detect_format(path) == SaveFormat.BINARY
        assert [e.votes for e in _load(path)] == [1, 1]

    @pytest.mark.parametrize("save_format", list(SaveFormat))
    @pytest.mark.integration
    def test_counter_overflow_exits_cleanly(
        self, runner: CliRunner, tmp_path: Path, save_format: SaveFormat
    ) -> None:
        """A vote pushing counters past 32 bits ends with an error, not a crash."""
        path = tmp_path / "save"
        make_set(
            make_entry("a", votes=U32_MAX), make_entry("b", votes=U32_MAX)
        ).save(path, save_format)
        before = path.read_bytes()

        result = runner.invoke(cli, ["vote", str(path)], input="1\n")

        assert result.exit_code == 1
        assert "Failed to encode" in result.output
        assert "out of range" in result.output
        assert path.read_bytes() == before

    @pytest.mark.integration
    def test_strategy_from_env(
        self,
        runner: CliRunner,
        save_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """RANKVOTE_STRATEGY picks the default strategy."""
        monkeypatch.setenv("RANKVOTE_STRATEGY", "nearest")

        result = runner.invoke(cli, ["vote", str(save_path)], input="q\n")

        assert result.exit_code == 0, result.output
        assert SelectionMetrics.get_instance().pairs_by_strategy == {"nearest": 1}

    @pytest.mark.integration
    def test_unknown_strategy_rejected(
        self, runner: CliRunner, save_path: Path
    ) -> None:
        """Strategy names are validated."""
        result = runner.invoke(cli, ["vote", str(save_path), "--strategy", "best"])

        assert result.exit_code == 2
