"""Avaliacao aritmetica segura.

extract_expression(): localiza a expressao no texto livre
  ("Calculate 25 * 4 + 16", "What is 12 divided by 3?").
evaluate(): avalia via AST, aceitando apenas numeros, + - * / // % ** e
  parenteses. Nunca usa eval().
"""
import ast
import math
import operator
import re
from typing import Optional

MAX_EXPONENT = 100

_WORD_OPERATORS = [
    (r"\bdivided\s+by\b", "/"),
    (r"\bdividido\s+por\b", "/"),
    (r"\bmultiplied\s+by\b", "*"),
    (r"\bvezes\b", "*"),
    (r"\btimes\b", "*"),
    (r"\bplus\b", "+"),
    (r"\bmais\b", "+"),
    (r"\bminus\b", "-"),
    (r"\bmenos\b", "-"),
    (r"(?<=\d)\s*x\s*(?=\d)", " * "),
    (r"×", "*"),
    (r"÷", "/"),
    (r"\^", "**"),
]

_EXPRESSION_RUN = re.compile(r"[\d\.\s\+\-\*/%\(\)]+")

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


class CalculationError(ValueError):
    """Expressao invalida ou nao avaliavel."""


def normalize(text: str) -> str:
    """Troca operadores por extenso pelos simbolos."""
    normalized = text
    for pattern, symbol in _WORD_OPERATORS:
        normalized = re.sub(pattern, symbol, normalized, flags=re.IGNORECASE)
    return normalized


def extract_expression(text: str) -> Optional[str]:
    """Maior trecho aritmetico do texto que contenha ao menos um digito."""
    candidates = [
        " ".join(run.split())
        for run in _EXPRESSION_RUN.findall(normalize(text))
        if re.search(r"\d", run)
    ]
    candidates = [c.strip(" .") for c in candidates]
    candidates = [c for c in candidates if c]
    if not candidates:
        return None
    return max(candidates, key=len)


def _eval_node(node: ast.AST) -> float | int:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)

    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_eval_node(node.operand))

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise CalculationError(f"expoente acima do limite ({MAX_EXPONENT})")
        try:
            result = _BINARY_OPERATORS[type(node.op)](left, right)
        except ZeroDivisionError:
            raise CalculationError("divisão por zero")
        except OverflowError:
            raise CalculationError("resultado fora do intervalo numérico")
        if isinstance(result, float) and not math.isfinite(result):
            raise CalculationError("resultado fora do intervalo numérico")
        return result

    raise CalculationError(f"elemento não suportado: {type(node).__name__}")


def evaluate(expression: str) -> float | int:
    """Avalia a expressao aritmetica."""
    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError:
        raise CalculationError(f"expressão inválida: {expression}")
    return _eval_node(tree)


def format_number(value: float | int) -> str:
    """116.0 -> "116"; 0.1 + 0.2 -> "0.3"."""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.10g}"
    return str(value)


def multiplication_table(n: int, upto: int = 10) -> str:
    lines = [f"Multiplication Table of {n}:"]
    lines.extend(f"{n} x {i} = {n * i}" for i in range(1, upto + 1))
    return "\n".join(lines) + "\n"
