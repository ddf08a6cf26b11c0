"""Tests for the backtest and load-results entrypoints."""

import json
from datetime import datetime

import pytest

from houndcast.entrypoints import backtest as backtest_cli
from houndcast.entrypoints import load_results as load_cli
from houndcast.ground_truth import DBM, SqlGroundTruthRepository
from houndcast.ground_truth.dbm import build_sqlite_url
from houndcast.models import BacktestResults

from tests.conftest import RACE_DATE, RACE_TIME


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path):
    monkeypatch.setenv("HOUNDCAST_TEST_MODE", "true")
    monkeypatch.setenv("HOUNDCAST_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("HOUNDCAST_LOGGING__DIRECTORY", str(tmp_path / "log"))


def _export(tmp_path):
    rows = [
        {
            "dogId": i + 1,
            "dogName": name,
            "raceId": 7,
            "resultPosition": i + 1,
            "distance": 480,
            "trackName": "Romford",
            "raceDateTime": "2025-06-02T14:18:00",
            "bfOdds1Minute": 2.0 + i,
            "trapNumber": i + 1,
        }
        for i, name in enumerate(["Alpha", "Bravo", "Charlie", "Delta", "Echo"])
    ]
    path = tmp_path / "results.json"
    path.write_text(json.dumps(rows), encoding="utf-8")
    return path


class TestParser:
    def test_parses_window_and_overrides(self):
        args = backtest_cli.build_parser().parse_args(
            [
                "--start", "2025-06-02T13:00:00+01:00",
                "--distances", "480", "500",
                "--stake", "5",
                "--favorite-protected",
            ]
        )
        assert args.start == datetime(2025, 6, 2, 12, 0)
        assert args.end is None
        assert args.distances == [480, 500]
        assert args.stake == 5.0
        assert args.favorite_protected is True
        assert args.balance is None

    def test_rejects_bad_datetime(self):
        with pytest.raises(SystemExit):
            backtest_cli.build_parser().parse_args(["--start", "yesterday", "--distances", "480"])


class TestBacktestMain:
    def test_missing_instruction_exits_2(self, tmp_path, capsys):
        code = backtest_cli.main(
            ["--start", "2025-06-02T14:18", "--distances", "480", "--results-json", str(_export(tmp_path))]
        )
        assert code == 2
        assert "instruction" in capsys.readouterr().err

    def test_bad_odds_range_exits_2(self, tmp_path, capsys):
        prompt = tmp_path / "prompt.txt"
        prompt.write_text("rank", encoding="utf-8")
        code = backtest_cli.main(
            [
                "--start", "2025-06-02T14:18",
                "--distances", "480",
                "--instruction", str(prompt),
                "--results-json", str(_export(tmp_path)),
                "--odds-low", "6",
                "--odds-high", "2",
            ]
        )
        assert code == 2
        assert "houndcast-backtest:" in capsys.readouterr().err

    def test_writes_results(self, tmp_path, monkeypatch):
        prompt = tmp_path / "prompt.txt"
        prompt.write_text("rank", encoding="utf-8")
        output = tmp_path / "out" / "results.json"

        async def fake_run(args, settings):
            assert args.end is None
            return BacktestResults.model_validate(_empty_results())

        monkeypatch.setattr(backtest_cli, "run", fake_run)
        code = backtest_cli.main(
            ["--start", "2025-06-02T14:18", "--distances", "480", "--output", str(output)]
        )

        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["meta"]["balance"] == {"initialBalance": 100.0, "finalBalance": 100.0}
        assert data["races"] == []


def _empty_results():
    return {
        "meta": {
            "raceCount": {"totalRaces": 0, "racesTracked": 0},
            "oddsRange": {"low": 1.5, "high": 5.0},
            "positionInfo": {},
            "skipInfo": {},
            "balance": {"initialBalance": 100.0, "finalBalance": 100.0},
            "errors": {},
            "initialStake": 10.0,
            "percentage": 0.0,
        },
        "races": [],
    }


class TestLoadResultsMain:
    @pytest.mark.asyncio
    async def test_load_inserts_rows(self, tmp_path):
        dbm = DBM(url=build_sqlite_url(str(tmp_path / "gt.db")))
        try:
            inserted = await load_cli.load(str(_export(tmp_path)), dbm)
            field = await SqlGroundTruthRepository(dbm).race_participants(RACE_DATE, RACE_TIME)
        finally:
            await dbm.dispose()

        assert inserted == 5
        assert [r.dog_name for r in field] == ["Alpha", "Bravo", "Charlie", "Delta", "Echo"]

    def test_main_missing_file_exits_2(self, tmp_path, capsys):
        code = load_cli.main([str(tmp_path / "missing.json"), "--database-url", build_sqlite_url(str(tmp_path / "x.db"))])
        assert code == 2
        assert "cannot read results file" in capsys.readouterr().err
