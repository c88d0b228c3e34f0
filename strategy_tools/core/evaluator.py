# -*- coding: utf-8 -*-
"""
公式求值器（安全求值，不使用 eval）

支持: + - * /、括号分组、函数 SUM() AVG() MIN() MAX() FIRST() LAST() ABS()

求值步骤:
1. 递归消解括号组，每组折叠为一个数字（无法折叠的组直接丢弃，见 _reduce_or_drop）；
   函数调用收集右括号前所有数字作为参数，不对参数求值
2. 第一遍从左到右折叠 * 和 /
3. 第二遍从左到右折叠 + 和 -

返回值: float；无结果为 None；除以 0 为 NaN。不抛异常，不修改输入。
"""

import logging
import math
from typing import Any, List, Optional, Sequence

from .tokens import KNOWN_FUNCTIONS, Token, TokenKind, normalize_tokens

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """整个表达式作废（未知函数）"""


class _DivisionByZero(Exception):
    """整个表达式为 NaN"""


# ============================================================
# 聚合函数
# ============================================================

def _apply_function(name: str, args: List[float]) -> Optional[float]:
    """
    应用聚合函数

    无参数时返回 None（不写入结果流，而不是 0）。
    未知函数名使整个表达式作废。
    """
    if name not in KNOWN_FUNCTIONS:
        logger.debug("unknown function %s(, expression aborted", name)
        raise _Abort(name)

    if not args:
        return None

    if name == "SUM":
        return sum(args)
    if name == "AVG":
        return sum(args) / len(args)
    if name == "MIN":
        return min(args)
    if name == "MAX":
        return max(args)
    if name == "FIRST":
        return args[0]
    if name == "LAST":
        return args[-1]
    # ABS 只取第一个参数
    return abs(args[0])


# ============================================================
# 括号 / 函数消解
# ============================================================

def _matching_close(tokens: Sequence[Token], open_index: int) -> int:
    """
    查找 open_index 处左括号（或函数标记）对应的右括号下标

    括号不配对时返回 len(tokens)，即分组延伸到末尾。
    """
    depth = 1
    i = open_index + 1
    while i < len(tokens):
        if tokens[i].is_opener:
            depth += 1
        elif tokens[i].kind is TokenKind.CLOSE:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return len(tokens)


def _reduce_or_drop(processed: List[Token], value: Optional[float], source: str) -> None:
    """
    把子表达式的结果写回父序列；结果为 None 时丢弃

    宽松处理集中在这里：失败的子表达式不报错，直接从记号流中消失。
    """
    if value is None:
        logger.debug("dropped %s that did not reduce to a number", source)
        return
    processed.append(Token.number(value))


def _reduce_groups(tokens: Sequence[Token]) -> List[Token]:
    """把序列中的括号组和函数调用折叠为数字，返回扁平序列"""
    processed: List[Token] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]

        if token.kind is TokenKind.FUNCTION:
            end = _matching_close(tokens, i)
            # 参数为区间内任意深度的数字，嵌套括号、函数标记和运算符都丢弃
            args = [t.value for t in tokens[i + 1:end] if t.is_number]
            _reduce_or_drop(processed, _apply_function(token.value, args), f"{token.value}()")
            i = end + 1

        elif token.kind is TokenKind.OPEN:
            end = _matching_close(tokens, i)
            _reduce_or_drop(processed, _evaluate_tokens(tokens[i + 1:end]), "parenthesis group")
            i = end + 1

        elif token.kind is TokenKind.CLOSE:
            # 多余的右括号
            i += 1

        else:
            processed.append(token)
            i += 1

    return processed


# ============================================================
# 算术
# ============================================================

def _multiplicative_pass(processed: Sequence[Token]) -> List[Token]:
    """第一遍: 紧邻数字前的 * / 立即折叠"""
    intermediate: List[Token] = []
    for token in processed:
        if token.is_number:
            if (len(intermediate) >= 2
                    and intermediate[-1].kind is TokenKind.OPERATOR
                    and intermediate[-1].value in ("*", "/")
                    and intermediate[-2].is_number):
                op = intermediate.pop().value
                left = intermediate.pop().value
                if op == "*":
                    intermediate.append(Token.number(left * token.value))
                else:
                    if token.value == 0:
                        logger.debug("division by zero: %s / 0", left)
                        raise _DivisionByZero()
                    intermediate.append(Token.number(left / token.value))
            else:
                intermediate.append(token)
        elif token.kind is TokenKind.OPERATOR:
            intermediate.append(token)
    return intermediate


def _additive_pass(intermediate: Sequence[Token]) -> Optional[float]:
    """第二遍: 从第一个数字开始依次应用 + -，不成对的记号跳过"""
    if not intermediate or not intermediate[0].is_number:
        return None

    result = intermediate[0].value
    j = 1
    while j < len(intermediate):
        op = intermediate[j]
        right = intermediate[j + 1] if j + 1 < len(intermediate) else None
        right_is_number = right is not None and right.is_number

        if op.kind is TokenKind.OPERATOR and op.value == "+" and right_is_number:
            result = result + right.value
        elif op.kind is TokenKind.OPERATOR and op.value == "-" and right_is_number:
            result = result - right.value
        elif op.kind is not TokenKind.OPERATOR:
            j += 1
            continue
        j += 2

    return result


def _evaluate_tokens(tokens: Sequence[Token]) -> Optional[float]:
    """对已规范化的序列求值（递归入口）"""
    if not tokens:
        return None

    processed = _reduce_groups(tokens)

    if not processed:
        return None
    if any(t.kind is TokenKind.INVALID for t in processed):
        logger.debug("invalid tokens left after reduction: %s", processed)
        return None
    if len(processed) == 1:
        return processed[0].value if processed[0].is_number else None

    return _additive_pass(_multiplicative_pass(processed))


def evaluate(tokens: Sequence[Any]) -> Optional[float]:
    """
    计算公式记号序列

    Args:
        tokens: 原始记号序列，可混合数字、字符串与 Token
            [2, "+", 3, "*", 4]
            ["(", 2, "+", 3, ")", "*", 4]
            ["SUM(", 1, 2, 3, ")"]

    Returns:
        float 结果；空输入 / 无法求值 / 未知函数返回 None；除以 0 返回 NaN

    Example:
        >>> evaluate([2, "+", 3, "*", 4])
        14.0
        >>> evaluate(["AVG(", ")"]) is None
        True
    """
    normalized = normalize_tokens(tokens)
    try:
        result = _evaluate_tokens(normalized)
    except _Abort:
        return None
    except _DivisionByZero:
        return math.nan
    logger.debug("evaluate %s -> %s", normalized, result)
    return result
