#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sc - Strategy Scorecard CLI

战略绩效命令行工具：公式求值、度量计算、达成率、加权汇总、计分卡、杠杆分析。

用法:
    sc <command> [options] < input.json

命令:
    eval         公式记号求值
    measure      度量计算值（带追溯）
    achievement  达成率
    rollup       加权汇总
    scorecard    完整计分卡
    leverage     KPI杠杆排序
    employee     员工计分卡

示例:
    echo '[2, "+", 3, "*", 4]' | sc eval
    sc scorecard --period 2025-03 < snapshot.json
    sc scorecard --period 2025-03 --xlsx strategy.xlsx --output scorecard.xlsx
    sc --verbose leverage --period 2025-03 --top 5 < snapshot.json
"""

import sys
import math
import logging
import argparse
from typing import Any, Dict, List, Optional

from strategy_tools.core import Settings, Snapshot, evaluate, format_tokens, normalize_tokens, to_number
from strategy_tools.tools.measure_tools import explain_measure, calculate_measures
from strategy_tools.tools.achievement_tools import (
    calc_achievement,
    achievement_status,
    calculate_achievements,
    kpi_achievements,
    employee_scorecard,
)
from strategy_tools.tools.rollup_tools import weighted_rollup
from strategy_tools.tools.leverage_tools import leverage_ranking
from strategy_tools.tools.scorecard_tools import build_scorecard, ytd_scorecard
from strategy_tools.utils import (
    StrategyError,
    load_json_input,
    validate_period,
    print_json,
    handle_error,
)

logger = logging.getLogger("sc")


# ============================================================
# 输出格式化
# ============================================================

def format_number(value: Optional[float], style: str = "score") -> str:
    """格式化数字；None 显示 N/A，NaN 显示 无效"""
    if value is None:
        return "N/A"
    if math.isnan(value):
        return "无效"
    if style == "percent":
        return f"{value:.1f}%"
    if style == "weight":
        return f"{value:.4f}"
    return f"{value:,.2f}"


def print_table(headers: List[str], rows: List[List[str]], title: str = None):
    """输出表格"""
    if title:
        print(f"\n{title}")
        print("─" * 60)

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    header_line = "│ " + " │ ".join(h.ljust(widths[i]) for i, h in enumerate(headers)) + " │"
    separator = "├─" + "─┼─".join("─" * w for w in widths) + "─┤"
    top_border = "┌─" + "─┬─".join("─" * w for w in widths) + "─┐"
    bottom_border = "└─" + "─┴─".join("─" * w for w in widths) + "─┘"

    print(top_border)
    print(header_line)
    print(separator)
    for row in rows:
        row_line = "│ " + " │ ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)) + " │"
        print(row_line)
    print(bottom_border)


def status_icon(status: str) -> str:
    """状态图标"""
    icons = {
        "excellent": "★",
        "good": "✓",
        "warning": "△",
        "poor": "✗",
    }
    return icons.get(status, "○")


# ============================================================
# 输入
# ============================================================

def load_snapshot(args) -> Snapshot:
    """从 --xlsx 工作簿或 stdin JSON 读取快照"""
    if getattr(args, "xlsx", None):
        from strategy_tools.io.workbook_reader import read_workbook
        return read_workbook(args.xlsx)

    data = load_json_input()
    try:
        return Snapshot.from_dict(data)
    except (TypeError, ValueError, AttributeError) as exc:
        raise StrategyError(
            code="INVALID_SNAPSHOT",
            message=f"快照数据格式错误: {exc}",
        ) from exc


def _items(data: Any, key: str) -> List[Dict[str, Any]]:
    """接受数组，或 {key: [...]} 对象"""
    items = data if isinstance(data, list) else data.get(key, [])
    if not isinstance(items, list):
        raise StrategyError(code="INVALID_INPUT", message=f"{key} 必须是数组")
    return items


def _value_status(value: Optional[float]) -> str:
    if value is None:
        return "no_data"
    if math.isnan(value):
        return "invalid"
    return "ok"


# ============================================================
# 命令处理
# ============================================================

def cmd_eval(args):
    """公式求值"""
    data = load_json_input(allow_list=True)
    tokens = _items(data, "tokens")

    value = evaluate(tokens)
    result = {
        "tokens": format_tokens(normalize_tokens(tokens)),
        "result": value,
        "status": _value_status(value),
    }

    if args.json:
        print_json(result)
    else:
        print(f"\n公式: {result['tokens']}")
        print(f"结果: {format_number(value)}")


def cmd_measure(args):
    """度量计算值"""
    period = validate_period(args.period)
    snapshot = load_snapshot(args)

    if args.measure:
        if args.measure not in snapshot.measures:
            raise StrategyError(
                code="MEASURE_NOT_FOUND",
                message=f"度量不存在: {args.measure}",
            )
        codes = [args.measure]
    else:
        codes = list(snapshot.measures)

    results = [explain_measure(code, period, snapshot) for code in codes]

    if args.json:
        print_json({"period": period, "measures": [r.to_dict() for r in results]})
    else:
        for r in results:
            print()
            print(r.explain())


def cmd_achievement(args):
    """达成率"""
    data = load_json_input()

    if args.cap is not None:
        cap = args.cap
    else:
        cap = data.get("cap", 200.0)
        if cap is not None:
            number = to_number(cap)
            if number is None:
                raise StrategyError(code="INVALID_INPUT", message=f"cap 必须是数字: {cap!r}")
            cap = number

    value = data.get("value", data.get("actual"))
    try:
        value = float(value) if value is not None else None
    except (TypeError, ValueError) as exc:
        raise StrategyError(code="INVALID_INPUT", message=f"value 必须是数字: {value!r}") from exc

    pct = calc_achievement(value, data.get("target"), data.get("polarity", "Positive"), cap)
    settings = Settings.from_dict(data.get("settings"))
    result = {
        "value": value,
        "target": data.get("target"),
        "polarity": data.get("polarity", "Positive"),
        "cap": cap,
        "achievement": pct,
        "status": achievement_status(pct, settings),
    }

    if args.json:
        print_json(result)
    else:
        print(f"\n达成率: {format_number(pct, 'percent')} {status_icon(result['status'])}")


def cmd_rollup(args):
    """加权汇总"""
    data = load_json_input(allow_list=True)
    items = _items(data, "items")
    if not all(isinstance(item, dict) for item in items):
        raise StrategyError(code="INVALID_INPUT", message="items 的每一项必须是对象")

    score = weighted_rollup(items, args.cap)
    result = {"score": score, "items": len(items)}

    if args.json:
        print_json(result)
    else:
        rows = [[str(i.get("name", i.get("code", ""))), format_number(to_number(i.get("weight"))),
                 format_number(to_number(i.get("achievement")), "percent")] for i in items]
        print_table(["项目", "权重", "达成率"], rows, title="加权汇总")
        print(f"\n得分: {format_number(score)}")


def _print_scores(title: str, scores: Dict[str, Optional[float]], names: Dict[str, str]):
    if not scores:
        return
    rows = [[code, names.get(code, ""), format_number(score)] for code, score in scores.items()]
    print_table(["代码", "名称", "得分"], rows, title=title)


def cmd_scorecard(args):
    """完整计分卡"""
    period = validate_period(args.period)
    snapshot = load_snapshot(args)

    result = build_scorecard(snapshot, period)
    if args.ytd:
        result["ytd"] = ytd_scorecard(snapshot, period)

    if args.output:
        from strategy_tools.io.excel_writer import ScorecardWriter
        writer = ScorecardWriter()
        writer.write_scorecard(result, snapshot)
        writer.write_values(result)
        writer.write_leverage(result["leverage"])
        result["output"] = writer.save(args.output)
        logger.info("scorecard written to %s", result["output"])

    if args.json:
        print_json(result)
        return

    rollups = result["rollups"]
    print(f"\n计分卡 {period}")
    print("─" * 60)
    print(f"组织得分: {format_number(rollups['overall'])}")
    if args.ytd:
        print(f"年初至今: {format_number(result['ytd']['overall'])}")

    _print_scores("战略支柱", rollups["pillars"], {c: p.name for c, p in snapshot.pillars.items()})
    _print_scores("业务单元", rollups["business_units"], {})
    _print_scores("战略目标", rollups["objectives"], {c: o.name for c, o in snapshot.objectives.items()})

    rows = []
    for code, pct in result["kpi_achievements"].items():
        status = result["kpi_status"][code]
        rows.append([code, snapshot.kpis[code].name, format_number(pct, "percent"),
                     f"{status_icon(status)} {status}"])
    if rows:
        print_table(["KPI", "名称", "达成率", "状态"], rows, title="KPI 达成")

    if args.output:
        print(f"\n已导出: {result['output']}")


def cmd_leverage(args):
    """KPI杠杆排序"""
    period = validate_period(args.period)
    snapshot = load_snapshot(args)

    settings = snapshot.settings
    calculated = calculate_measures(snapshot, [period])
    achievements = calculate_achievements(snapshot, calculated, [period], settings)
    by_kpi = kpi_achievements(snapshot, achievements, period)

    ranking = leverage_ranking(snapshot, by_kpi, period, settings,
                               compound=True if args.compound else None)
    if args.top:
        ranking = ranking[:args.top]

    if args.json:
        print_json({"period": period, "leverage": ranking})
        return

    rows = [
        [str(i), r["kpi_code"], r["kpi_name"], format_number(r["composite_weight"], "weight"),
         format_number(r["current_achievement"], "percent"), format_number(r["leverage_score"]),
         f"+{format_number(r['impact_of_10pct'])}"]
        for i, r in enumerate(ranking, start=1)
    ]
    print_table(["#", "KPI", "名称", "综合权重", "当前达成", "杠杆得分", "+10%影响"], rows,
                title=f"KPI 杠杆排序 {period}")


def cmd_employee(args):
    """员工计分卡"""
    data = load_json_input(allow_list=True)
    kpis = _items(data, "kpis")
    period = data.get("period", args.period) if isinstance(data, dict) else args.period

    settings = Settings.from_dict(data.get("settings") if isinstance(data, dict) else None)
    if args.cap is not None:
        settings = Settings.from_dict({**settings.to_dict(), "employee_overachievement_cap": args.cap})

    result = employee_scorecard(kpis, period, settings)

    if args.json:
        print_json(result)
        return

    rows = [
        [k["code"], k["name"], format_number(k["weight"]), format_number(k["achievement"], "percent"),
         f"{status_icon(k['status'])} {k['status']}"]
        for k in result["kpis"]
    ]
    print_table(["代码", "名称", "权重", "达成率", "状态"], rows, title=f"员工计分卡 {period}")
    print(f"\n综合得分: {format_number(result['overall'])} {status_icon(result['status'])}")


def main():
    parser = argparse.ArgumentParser(
        prog="sc",
        description="Strategy Scorecard - 战略绩效计算工具"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="输出调试日志到 stderr")

    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    # eval - 公式求值
    eval_parser = subparsers.add_parser("eval", help="公式记号求值")
    eval_parser.add_argument("--json", action="store_true")
    eval_parser.set_defaults(func=cmd_eval)

    # measure - 度量计算值
    measure_parser = subparsers.add_parser("measure", help="度量计算值（带追溯）")
    measure_parser.add_argument("--period", required=True, help="期间 YYYY-MM")
    measure_parser.add_argument("--measure", help="只计算该度量")
    measure_parser.add_argument("--xlsx", help="从战略工作簿读取快照")
    measure_parser.add_argument("--json", action="store_true")
    measure_parser.set_defaults(func=cmd_measure)

    # achievement - 达成率
    ach_parser = subparsers.add_parser("achievement", help="达成率")
    ach_parser.add_argument("--cap", type=float, help="达成率上限 (默认200%%)")
    ach_parser.add_argument("--json", action="store_true")
    ach_parser.set_defaults(func=cmd_achievement)

    # rollup - 加权汇总
    rollup_parser = subparsers.add_parser("rollup", help="加权汇总")
    rollup_parser.add_argument("--cap", type=float, help="汇总上限（默认不封顶）")
    rollup_parser.add_argument("--json", action="store_true")
    rollup_parser.set_defaults(func=cmd_rollup)

    # scorecard - 计分卡
    sc_parser = subparsers.add_parser("scorecard", help="完整计分卡")
    sc_parser.add_argument("--period", required=True, help="期间 YYYY-MM")
    sc_parser.add_argument("--xlsx", help="从战略工作簿读取快照")
    sc_parser.add_argument("--output", "-o", help="导出 Excel 文件路径")
    sc_parser.add_argument("--ytd", action="store_true", help="附加年初至今得分")
    sc_parser.add_argument("--json", action="store_true")
    sc_parser.set_defaults(func=cmd_scorecard)

    # leverage - 杠杆排序
    lev_parser = subparsers.add_parser("leverage", help="KPI杠杆排序")
    lev_parser.add_argument("--period", required=True, help="期间 YYYY-MM")
    lev_parser.add_argument("--top", type=int, default=0, help="只显示前 N 个")
    lev_parser.add_argument("--compound", action="store_true", help="沿目标/支柱权重连乘")
    lev_parser.add_argument("--xlsx", help="从战略工作簿读取快照")
    lev_parser.add_argument("--json", action="store_true")
    lev_parser.set_defaults(func=cmd_leverage)

    # employee - 员工计分卡
    emp_parser = subparsers.add_parser("employee", help="员工计分卡")
    emp_parser.add_argument("--period", default="current", help="期间")
    emp_parser.add_argument("--cap", type=float, help="员工达成率上限 (默认200%%)")
    emp_parser.add_argument("--json", action="store_true")
    emp_parser.set_defaults(func=cmd_employee)

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except StrategyError as err:
        handle_error(err)


if __name__ == "__main__":
    main()
