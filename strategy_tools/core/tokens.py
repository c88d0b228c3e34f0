# -*- coding: utf-8 -*-
"""
公式记号 (Token) 与规范化

公式构建器持久化下来的记号类型混杂：数字、数字字符串、运算符、括号、
函数标记 "SUM(" 等。这里在边界处一次性转换为带标签的 Token，
下游求值器只看 Token.kind，不再做临时的类型判断。

规范化不抛异常：无法识别的记号原样包装为 INVALID，由求值器降级为 None。
"""

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    """记号类别"""
    NUMBER = "number"
    OPERATOR = "operator"
    OPEN = "open"            # (
    CLOSE = "close"          # )
    FUNCTION = "function"    # SUM( 等，自带左括号
    INVALID = "invalid"      # 无法识别，原样透传


OPERATORS = ("+", "-", "*", "/")

# 公式构建器的显示符号
OPERATOR_ALIASES = {
    "×": "*",
    "÷": "/",
    "−": "-",
}

KNOWN_FUNCTIONS = ("SUM", "AVG", "MIN", "MAX", "FIRST", "LAST", "ABS")

_FUNCTION_TAG = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*\($")


@dataclass(frozen=True)
class Token:
    """
    规范化后的公式记号

    value 的含义随 kind 变化:
        NUMBER   -> float
        OPERATOR -> "+" / "-" / "*" / "/"
        OPEN     -> "("
        CLOSE    -> ")"
        FUNCTION -> 大写函数名，如 "SUM"
        INVALID  -> 原始记号
    """
    kind: TokenKind
    value: Any

    @classmethod
    def number(cls, value: float) -> "Token":
        return cls(TokenKind.NUMBER, float(value))

    @property
    def is_number(self) -> bool:
        return self.kind is TokenKind.NUMBER

    @property
    def is_opener(self) -> bool:
        """左括号或函数标记（函数标记隐含一个左括号）"""
        return self.kind in (TokenKind.OPEN, TokenKind.FUNCTION)

    def __repr__(self) -> str:
        if self.kind is TokenKind.FUNCTION:
            return f"{self.value}("
        if self.kind is TokenKind.INVALID:
            return f"<invalid {self.value!r}>"
        if self.kind is TokenKind.NUMBER:
            return f"{self.value:g}"
        return str(self.value)


def _finite(value: float) -> bool:
    return not (math.isnan(value) or math.isinf(value))


def normalize_token(raw: Any) -> Token:
    """
    规范化单个记号

    规则:
    - Token 原样返回
    - int/float（非 bool、有限值）-> NUMBER
    - 字符串先 strip；"(" / ")" / 运算符 / "NAME(" 函数标记分别识别
    - 能解析为有限数字的字符串 -> NUMBER
    - 其余 -> INVALID
    """
    if isinstance(raw, Token):
        return raw

    if isinstance(raw, bool):
        return Token(TokenKind.INVALID, raw)

    if isinstance(raw, (int, float)):
        if _finite(float(raw)):
            return Token.number(raw)
        return Token(TokenKind.INVALID, raw)

    if isinstance(raw, str):
        text = raw.strip()
        if text == "(":
            return Token(TokenKind.OPEN, "(")
        if text == ")":
            return Token(TokenKind.CLOSE, ")")
        text = OPERATOR_ALIASES.get(text, text)
        if text in OPERATORS:
            return Token(TokenKind.OPERATOR, text)

        match = _FUNCTION_TAG.match(text)
        if match:
            return Token(TokenKind.FUNCTION, match.group(1).upper())

        try:
            number = float(text)
        except ValueError:
            return Token(TokenKind.INVALID, raw)
        if _finite(number):
            return Token.number(number)

    return Token(TokenKind.INVALID, raw)


def normalize_tokens(raw_tokens: Iterable[Any]) -> List[Token]:
    """规范化记号序列，返回新列表，不修改输入"""
    if raw_tokens is None:
        return []
    tokens = [normalize_token(raw) for raw in raw_tokens]
    logger.debug("normalized tokens: %s", tokens)
    return tokens


def format_tokens(tokens: Iterable[Any]) -> str:
    """记号序列的可读文本，如 "SUM( 1 2 ) * 3" """
    return " ".join(repr(normalize_token(t)) for t in tokens)
