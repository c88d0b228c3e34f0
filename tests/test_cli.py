# -*- coding: utf-8 -*-
"""
sc 命令行端到端测试
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SC = ROOT / "sc.py"


def run_cli(args, input_data=None, expect_ok=True, raw_input=None):
    cmd = [sys.executable, str(SC), *args]
    payload = raw_input if raw_input is not None else (
        json.dumps(input_data) if input_data is not None else None
    )
    result = subprocess.run(
        cmd,
        input=payload,
        text=True,
        capture_output=True,
        cwd=ROOT,
    )
    if expect_ok:
        assert result.returncode == 0, result.stdout + result.stderr
    else:
        assert result.returncode != 0, result.stdout + result.stderr
    return result


def run_json(args, input_data=None, expect_ok=True, raw_input=None):
    result = run_cli([*args, "--json"] if expect_ok else args, input_data, expect_ok, raw_input)
    output = result.stdout.strip()
    return json.loads(output) if output else {}


SNAPSHOT = {
    "pillars": [{"Code": "P1", "Name": "增长", "Weight": 100}],
    "objectives": [{"Code": "O1", "Name": "收入", "Level": "L1", "Weight": 100, "Pillar_Code": "P1"}],
    "kpis": [
        {"Code": "K1", "Name": "销售额", "Objective_Code": "O1", "Weight": 40, "Target": 100},
        {"Code": "K2", "Name": "回款", "Objective_Code": "O1", "Weight": 60, "Target": 100},
    ],
    "measures": [
        {"Code": "M1", "KPI_Code": "K1", "Formula_Elements": [{"type": "dataPoint", "code": "actual"}]},
        {"Code": "M2", "KPI_Code": "K2", "Formula_Elements": [{"type": "dataPoint", "code": "actual"}]},
    ],
    "parameterValues": {
        "M1": {"actual": {"2025-03": 120}},
        "M2": {"actual": {"2025-03": 60}},
    },
}


class TestEval:

    def test_eval_list(self):
        result = run_json(["eval"], [2, "+", 3, "*", 4])
        assert result["result"] == 14
        assert result["status"] == "ok"

    def test_eval_division_by_zero(self):
        """NaN 输出为 null，并标记 invalid"""
        result = run_json(["eval"], {"tokens": [5, "/", 0]})
        assert result["result"] is None
        assert result["status"] == "invalid"

    def test_eval_text_output(self):
        result = run_cli(["eval"], ["SUM(", 1, 2, 3, ")"])
        assert "6.00" in result.stdout


class TestAchievementAndRollup:

    def test_achievement(self):
        result = run_json(["achievement"], {"value": 300, "target": 100})
        assert result["achievement"] == 200
        assert result["status"] == "excellent"

    def test_achievement_cap_option(self):
        result = run_json(["achievement", "--cap", "120"], {"value": 300, "target": 100})
        assert result["achievement"] == 120

    def test_rollup(self):
        result = run_json(["rollup"], [
            {"weight": 50, "achievement": 80},
            {"weight": 50, "achievement": 100},
        ])
        assert result["score"] == 90

    def test_achievement_invalid_cap(self):
        result = run_cli(["achievement"], {"value": 80, "target": 100, "cap": "abc"}, expect_ok=False)
        assert json.loads(result.stdout)["code"] == "INVALID_INPUT"

    def test_rollup_invalid_items(self):
        result = run_cli(["rollup"], [80, 100], expect_ok=False)
        assert json.loads(result.stdout)["code"] == "INVALID_INPUT"

    def test_rollup_no_data(self):
        result = run_json(["rollup"], {"items": [{"weight": 0, "achievement": 80}]})
        assert result["score"] is None


class TestSnapshotCommands:

    def test_measure(self):
        result = run_json(["measure", "--period", "2025-03", "--measure", "M1"], SNAPSHOT)
        assert result["measures"][0]["value"] == 120

    def test_measure_not_found(self):
        result = run_cli(["measure", "--period", "2025-03", "--measure", "NOPE"], SNAPSHOT,
                         expect_ok=False)
        assert json.loads(result.stdout)["code"] == "MEASURE_NOT_FOUND"

    def test_scorecard(self):
        result = run_json(["scorecard", "--period", "2025-03", "--ytd"], SNAPSHOT)
        assert result["rollups"]["overall"] == pytest.approx(84)
        assert result["ytd"]["overall"] == pytest.approx(84)

    def test_scorecard_export(self, tmp_path):
        output = tmp_path / "scorecard.xlsx"
        result = run_json(["scorecard", "--period", "2025-03", "--output", str(output)], SNAPSHOT)
        assert output.exists()
        assert result["output"] == str(output)

    def test_scorecard_text(self):
        result = run_cli(["scorecard", "--period", "2025-03"], SNAPSHOT)
        assert "84.00" in result.stdout

    def test_leverage_top(self):
        result = run_json(["leverage", "--period", "2025-03", "--top", "1"], SNAPSHOT)
        assert len(result["leverage"]) == 1
        assert result["leverage"][0]["kpi_code"] == "K2"

    def test_invalid_period(self):
        result = run_cli(["scorecard", "--period", "2025-13"], SNAPSHOT, expect_ok=False)
        assert json.loads(result.stdout)["code"] == "INVALID_PERIOD"

    def test_invalid_json(self):
        result = run_cli(["scorecard", "--period", "2025-03"], raw_input="{not json",
                         expect_ok=False)
        assert json.loads(result.stdout)["code"] == "INVALID_JSON"

    def test_verbose_logs_to_stderr(self):
        result = run_cli(["--verbose", "scorecard", "--period", "2025-03", "--json"], SNAPSHOT)
        json.loads(result.stdout)
        assert "DEBUG" in result.stderr


class TestEmployee:

    def test_employee(self):
        result = run_json(["employee", "--cap", "150"], {
            "period": "2025-03",
            "kpis": [
                {"name": "A", "weight": 50, "target": 10, "actual": 30},
                {"name": "B", "weight": 50, "target": 10, "actual": 5},
            ],
        })
        assert result["kpis"][0]["achievement"] == 150
        assert result["overall"] == pytest.approx(100)
