# -*- coding: utf-8 -*-
"""Shared helpers for the sc command: errors and JSON stdin/stdout."""

from __future__ import annotations

import json
import math
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .core.periods import parse_period


@dataclass
class StrategyError(Exception):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": True,
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


def load_json_input(allow_list: bool = False) -> Any:
    """Load JSON object (or list, when allowed) from stdin."""
    try:
        data = json.load(sys.stdin)
    except json.JSONDecodeError as exc:
        raise StrategyError(
            code="INVALID_JSON",
            message=f"无效的 JSON 输入: {exc}",
        ) from exc

    if isinstance(data, list) and allow_list:
        return data
    if not isinstance(data, dict):
        raise StrategyError(
            code="INVALID_JSON",
            message="输入必须是 JSON 对象（键值对）",
        )
    return data


def validate_period(key: Any) -> str:
    """校验期间键 "YYYY-MM" """
    if parse_period(key) is None:
        raise StrategyError(
            code="INVALID_PERIOD",
            message=f"无效的期间: {key!r}，应为 YYYY-MM",
        )
    return key.strip()


def to_jsonable(data: Any) -> Any:
    """NaN / inf 不是合法 JSON，输出为 null"""
    if isinstance(data, float) and (math.isnan(data) or math.isinf(data)):
        return None
    if isinstance(data, dict):
        return {k: to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(v) for v in data]
    return data


def print_json(data: Any) -> None:
    print(json.dumps(to_jsonable(data), ensure_ascii=False, indent=2))


def print_error(err: StrategyError) -> None:
    print_json(err.to_dict())


def handle_error(err: StrategyError) -> None:
    print_error(err)
    sys.exit(1)
