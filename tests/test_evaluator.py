# -*- coding: utf-8 -*-
"""
公式记号规范化与求值器测试用例
"""

import math

import pytest
from strategy_tools.core.tokens import Token, TokenKind, normalize_token, normalize_tokens, format_tokens
from strategy_tools.core.evaluator import evaluate


class TestNormalizeToken:
    """记号规范化测试"""

    def test_numbers(self):
        """数字与数字字符串"""
        assert normalize_token(3) == Token(TokenKind.NUMBER, 3.0)
        assert normalize_token(" 2.5 ") == Token(TokenKind.NUMBER, 2.5)
        assert normalize_token("-4") == Token(TokenKind.NUMBER, -4.0)

    def test_operators_and_aliases(self):
        """运算符及显示符号"""
        assert normalize_token("+").kind is TokenKind.OPERATOR
        assert normalize_token("×") == Token(TokenKind.OPERATOR, "*")
        assert normalize_token("÷") == Token(TokenKind.OPERATOR, "/")
        assert normalize_token("−") == Token(TokenKind.OPERATOR, "-")

    def test_parens_and_functions(self):
        """括号与函数标记"""
        assert normalize_token("(").kind is TokenKind.OPEN
        assert normalize_token(" ) ").kind is TokenKind.CLOSE
        assert normalize_token("sum(") == Token(TokenKind.FUNCTION, "SUM")
        assert normalize_token("FOO(") == Token(TokenKind.FUNCTION, "FOO")

    def test_unrecognized_passes_through(self):
        """无法识别的记号包装为 INVALID，不抛异常"""
        for raw in ("abc", "", None, True, float("nan"), float("inf"), {"x": 1}):
            assert normalize_token(raw).kind is TokenKind.INVALID

    def test_token_passthrough(self):
        """已规范化的 Token 原样返回"""
        token = Token.number(7)
        assert normalize_token(token) is token

    def test_normalize_does_not_mutate(self):
        """不修改输入"""
        raw = ["1", "+", 2]
        normalize_tokens(raw)
        assert raw == ["1", "+", 2]
        assert normalize_tokens(None) == []

    def test_format_tokens(self):
        """可读文本"""
        assert format_tokens(["SUM(", 1, "2", ")", "×", 3]) == "SUM( 1 2 ) * 3"


class TestArithmetic:
    """四则运算测试"""

    def test_multiplicative_binds_tighter(self):
        """乘除优先于加减"""
        assert evaluate([2, "+", 3, "*", 4]) == 14

    def test_parenthesis_precedence(self):
        """括号优先"""
        assert evaluate(["(", 2, "+", 3, ")", "*", 4]) == 20

    def test_mixed_chain(self):
        """混合运算从左到右"""
        assert evaluate([1, "+", 2, "*", 3, "-", 4, "/", 2]) == 5
        assert evaluate([8, "/", 2, "/", 2]) == 2
        assert evaluate([10, "-", 3, "-", 2]) == 5

    def test_nested_groups(self):
        """多层括号"""
        assert evaluate(["(", "(", 1, "+", 1, ")", "*", 3, ")", "+", 1]) == 7

    def test_string_tokens(self):
        """字符串形式的数字和显示符号"""
        assert evaluate(["2", "×", " 3 "]) == 6
        assert evaluate(["10", "÷", 4]) == pytest.approx(2.5)
        assert evaluate([10, "−", 4]) == 6

    def test_single_number(self):
        """单个数字"""
        assert evaluate(["7"]) == 7
        assert evaluate([Token.number(1.5)]) == 1.5

    def test_input_not_mutated(self):
        """求值不修改输入"""
        tokens = ["(", 1, "+", 2, ")", "*", 3]
        snapshot = list(tokens)
        assert evaluate(tokens) == evaluate(tokens) == 9
        assert tokens == snapshot


class TestFunctions:
    """聚合函数测试"""

    def test_sum(self):
        assert evaluate(["SUM(", 1, 2, 3, ")"]) == 6

    def test_avg_min_max(self):
        assert evaluate(["AVG(", 2, 4, 9, ")"]) == 5
        assert evaluate(["MIN(", 5, 2, 8, ")"]) == 2
        assert evaluate(["MAX(", 5, 2, 8, ")"]) == 8

    def test_first_last(self):
        assert evaluate(["FIRST(", 5, 2, 8, ")"]) == 5
        assert evaluate(["LAST(", 5, 2, 8, ")"]) == 8

    def test_abs_uses_first_argument(self):
        """ABS 只取第一个参数"""
        assert evaluate(["ABS(", -5, 3, ")"]) == 5

    def test_zero_arguments_yield_nothing(self):
        """无参数函数不产生值（不是 0）"""
        assert evaluate(["AVG(", ")"]) is None
        assert evaluate([5, "+", "SUM(", ")"]) == 5

    def test_operators_in_arguments_dropped(self):
        """参数区间里的运算符被丢弃"""
        assert evaluate(["SUM(", 1, "+", 2, ")"]) == 3

    def test_nested_tokens_flattened_into_arguments(self):
        """参数不求值：嵌套括号和函数里的数字都直接作为参数"""
        assert evaluate(["SUM(", 1, "(", 2, "+", 3, ")", ")"]) == 6
        assert evaluate(["SUM(", "(", 2, "*", 3, ")", 4, ")"]) == 9
        assert evaluate(["MAX(", 1, "MIN(", 7, 4, ")", ")"]) == 7

    def test_unknown_nested_function_ignored_in_arguments(self):
        """参数里的函数标记只是被丢弃的记号"""
        assert evaluate(["SUM(", 1, "MEDIAN(", 2, ")", ")"]) == 3

    def test_function_in_arithmetic(self):
        """函数结果参与运算"""
        assert evaluate(["SUM(", 1, 2, ")", "*", 10]) == 30

    def test_lowercase_function(self):
        assert evaluate(["sum(", 1, 2, ")"]) == 3

    def test_unknown_function_aborts(self):
        """未知函数使整个表达式为 None"""
        assert evaluate([1, "+", "MEDIAN(", 1, 2, ")"]) is None
        assert evaluate(["FOO(", ")"]) is None


class TestDegradation:
    """异常输入降级测试"""

    def test_empty(self):
        assert evaluate([]) is None
        assert evaluate(None) is None

    def test_division_by_zero(self):
        """除以 0 为 NaN"""
        assert math.isnan(evaluate([5, "/", 0]))

    def test_division_by_zero_inside_group(self):
        """括号里的除以 0 也使整个表达式为 NaN"""
        assert math.isnan(evaluate([1, "+", "(", 4, "/", 0, ")"]))
        assert math.isnan(evaluate(["(", "SUM(", 1, ")", "/", 0, ")", "+", 1]))

    def test_division_in_function_arguments_not_evaluated(self):
        """函数参数里的除法不执行，0 只是一个参数"""
        assert evaluate(["SUM(", "(", 1, "/", 0, ")", ")"]) == 1

    def test_invalid_token(self):
        """无法识别的记号使结果为 None"""
        assert evaluate([2, "+", "abc"]) is None
        assert evaluate(["abc"]) is None

    def test_invalid_group_dropped(self):
        """无法折叠的括号组被丢弃"""
        assert evaluate(["(", "abc", ")", 7]) == 7

    def test_leading_operator(self):
        """以运算符开头没有结果"""
        assert evaluate(["-", 5]) is None

    def test_trailing_operator_ignored(self):
        """末尾不成对的运算符被跳过"""
        assert evaluate([2, "+"]) == 2

    def test_unbalanced_parenthesis(self):
        """缺少右括号时分组延伸到末尾"""
        assert evaluate(["(", 2, "+", 3]) == 5
        assert evaluate([2, "*", "(", 3, "+", 1]) == 8

    def test_stray_close_skipped(self):
        """多余的右括号被跳过"""
        assert evaluate([2, ")", "+", 3]) == 5
