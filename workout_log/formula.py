"""Arithmetic for progression formulas.

Formulas such as ``r+1``, ``w+2.5`` or ``((w/r)^2)`` are parsed with a small
lark grammar and folded to a number by a Transformer. Only ``+ - * / ^``,
unary signs, parentheses, numbers and variable names exist; nothing is ever
handed to the host interpreter.
"""
import math
from typing import Mapping

from lark import Lark, Transformer
from lark.exceptions import LarkError, VisitError

from .errors import EvaluationError

FORMULA_GRAMMAR = r"""
?start: sum

?sum: product
    | sum "+" product      -> add
    | sum "-" product      -> sub

?product: unary
        | product "*" unary  -> mul
        | product "/" unary  -> div

?unary: power
      | "-" unary          -> neg
      | "+" unary          -> pos

?power: atom
      | atom "^" unary     -> pow

?atom: NUMBER              -> number
     | NAME                -> var
     | "(" sum ")"

NAME: /[A-Za-z_][A-Za-z0-9_]*/

%import common.NUMBER
%import common.WS_INLINE
%ignore WS_INLINE
"""

_PARSER = Lark(FORMULA_GRAMMAR, start="start", parser="lalr")


class Evaluate(Transformer):
    def __init__(self, formula: str, variables: Mapping[str, float]):
        super().__init__()
        self.formula = formula
        self.variables = variables

    def number(self, xs): return float(xs[0])
    def var(self, xs):
        name = str(xs[0])
        if name not in self.variables:
            raise EvaluationError(self.formula, f"undefined variable '{name}'")
        return float(self.variables[name])
    def add(self, xs): return xs[0] + xs[1]
    def sub(self, xs): return xs[0] - xs[1]
    def mul(self, xs): return xs[0] * xs[1]
    def div(self, xs): return xs[0] / xs[1]
    def pow(self, xs): return xs[0] ** xs[1]
    def neg(self, xs): return -xs[0]
    def pos(self, xs): return xs[0]


def evaluate(formula: str, variables: Mapping[str, float]) -> float:
    """Evaluate ``formula`` with ``variables`` (single letters by convention).

    Raises EvaluationError for undefined variables, malformed input and any
    result that is not a finite real number.
    """
    try:
        tree = _PARSER.parse(formula or "")
        result = Evaluate(formula, variables).transform(tree)
    except VisitError as e:
        orig = e.orig_exc
        if isinstance(orig, EvaluationError):
            raise orig from None
        if isinstance(orig, ZeroDivisionError):
            raise EvaluationError(formula, "division by zero") from None
        if isinstance(orig, OverflowError):
            raise EvaluationError(formula, "result out of range") from None
        raise
    except LarkError as e:
        raise EvaluationError(formula, f"malformed expression ({e.__class__.__name__})") from None
    if isinstance(result, complex) or not math.isfinite(result):
        raise EvaluationError(formula, "result is not a finite number")
    return result
