# -*- coding: utf-8 -*-
"""
期间键工具 ("YYYY-MM")
"""

import re
from typing import List, Optional, Tuple

_PERIOD = re.compile(r"^(\d{4})-(\d{2})$")


def parse_period(key: str) -> Optional[Tuple[int, int]]:
    """解析期间键，返回 (年, 月)；格式不对返回 None"""
    if not isinstance(key, str):
        return None
    match = _PERIOD.match(key.strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def make_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_index(key: str) -> Optional[int]:
    """从 0 开始的月份下标（宿主按下标存月度目标）"""
    parsed = parse_period(key)
    return parsed[1] - 1 if parsed else None


def previous_period(key: str) -> Optional[str]:
    """上一个月；一月返回 None（不跨年比较）"""
    parsed = parse_period(key)
    if not parsed or parsed[1] == 1:
        return None
    return make_period(parsed[0], parsed[1] - 1)


def year_to_date(key: str) -> List[str]:
    """当年一月到该期间的所有期间键"""
    parsed = parse_period(key)
    if not parsed:
        return []
    year, month = parsed
    return [make_period(year, m) for m in range(1, month + 1)]


def periods_of_year(year: int) -> List[str]:
    return [make_period(year, m) for m in range(1, 13)]
