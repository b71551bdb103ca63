"""
Testes do avaliador aritmetico.

Testa:
  - extracao da expressao em texto livre (simbolos e operadores por extenso)
  - avaliacao via AST e formatacao do resultado
  - rejeicao de construcoes nao aritmeticas
  - tabuada
"""

import pytest

from projects.calculator.evaluator import (
    CalculationError,
    evaluate,
    extract_expression,
    format_number,
    multiplication_table,
)


@pytest.mark.parametrize("text,expected", [
    ("Calculate 25 * 4 + 16", "25 * 4 + 16"),
    ("What is 12 divided by 3?", "12 / 3"),
    ("quanto é 7 vezes 8", "7 * 8"),
    ("(2 + 3) * 4", "(2 + 3) * 4"),
    ("2^10", "2**10"),
    ("3 x 5", "3 * 5"),
])
def test_extract_expression(text, expected):
    assert extract_expression(text) == expected


def test_extract_expression_without_numbers():
    assert extract_expression("Calculate something for me") is None
    assert extract_expression("") is None


@pytest.mark.parametrize("expression,expected", [
    ("25 * 4 + 16", "116"),
    ("12 / 3", "4"),
    ("7 / 2", "3.5"),
    ("0.1 + 0.2", "0.3"),
    ("-(2 + 3) * 2", "-10"),
    ("2**10", "1024"),
    ("17 % 5", "2"),
    ("17 // 5", "3"),
])
def test_evaluate(expression, expected):
    assert format_number(evaluate(expression)) == expected


def test_division_by_zero():
    with pytest.raises(CalculationError, match="zero"):
        evaluate("1 / 0")


@pytest.mark.parametrize("expression", [
    "__import__('os')",
    "abs(-1)",
    "x + 1",
    "2 +",
])
def test_rejects_non_arithmetic(expression):
    with pytest.raises(CalculationError):
        evaluate(expression)


def test_exponent_limit():
    with pytest.raises(CalculationError, match="expoente"):
        evaluate("9 ** 999999")


@pytest.mark.parametrize("expression", ["1e308 ** 2", "1e308 * 10", "-1e308 - 1e308"])
def test_float_overflow_is_calculation_error(expression):
    with pytest.raises(CalculationError, match="intervalo"):
        evaluate(expression)


def test_multiplication_table():
    table = multiplication_table(4, upto=3)

    assert table == "Multiplication Table of 4:\n4 x 1 = 4\n4 x 2 = 8\n4 x 3 = 12\n"
