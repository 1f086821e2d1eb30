#!/usr/bin/python3
# bpcalc, a binding-power calculator.
#
# Copyright (c) 2024 zhengxyz123
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import argparse
import math
import operator
import re
import sys
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple

try:
    import readline

    is_rl_available = True
except ModuleNotFoundError:
    is_rl_available = False

__version__ = "0.1"


def _truediv(lhs: float, rhs: float) -> float:
    # IEEE-754 semantics instead of ZeroDivisionError
    try:
        return lhs / rhs
    except ZeroDivisionError:
        if lhs == 0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)


operators_reg = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _truediv,
}
binding_powers = {
    "+": (1.0, 1.1),
    "-": (1.0, 1.1),
    "*": (2.0, 2.1),
    "/": (2.0, 2.1),
}


class BPCalcError(Exception):
    def __init__(
        self,
        code: str,
        position: tuple[int, int] | None = None,
        message: str | None = None,
    ) -> None:
        self.code = code
        self.position = position
        self.message = message or "found an error"
        super().__init__(self.message)


class MalformedStartError(BPCalcError):
    """An expression does not start with an operand."""


class UnexpectedTokenError(BPCalcError):
    """An operand appears where an operator was expected."""


class UnknownOperatorError(BPCalcError):
    """An operator has no entry in the binding power table."""


class UndefinedAtomError(BPCalcError):
    """An atom without a numeric value was evaluated."""


def display_error(error: BPCalcError) -> None:
    print(f"{error.message}:")
    print(f"  {error.code}")
    if error.position:
        highlight = " " * error.position[0] + "^" * (
            error.position[1] - error.position[0]
        )
        print(f"  {highlight}")


class Token(NamedTuple):
    type: str
    value: str
    where: tuple[int, int]


class TokenStream:
    """Cursor over the tokens of one line.

    Once the tokens run out, both `peek` and `next` keep returning an
    "end" token placed just after the last column.
    """

    def __init__(self, tokens: list[Token], end: int) -> None:
        self._tokens = list(reversed(tokens))
        self._end = Token("end", "", (end, end + 1))

    def peek(self) -> Token:
        return self._tokens[-1] if self._tokens else self._end

    def next(self) -> Token:
        return self._tokens.pop() if self._tokens else self._end


@dataclass(frozen=True)
class Atom:
    value: str
    where: tuple[int, int] | None = field(default=None, compare=False)

    def eval(self) -> float:
        if self.value not in "0123456789":
            raise UndefinedAtomError(
                "", self.where, f"atom '{self.value}' has no numeric value"
            )
        return float(self.value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False, repr=False)
class BinaryOp:
    """Operator node.

    `eval`, `str` and `==` walk the tree with an explicit stack, so a long
    left-deep chain such as "1+1+...+1" never hits the recursion limit.
    """

    op: str
    lhs: "Expr"
    rhs: "Expr"

    def eval(self) -> float:
        values: list[float] = []
        stack: list[tuple[Expr, bool]] = [(self, False)]
        while stack:
            node, ready = stack.pop()
            if isinstance(node, Atom):
                values.append(node.eval())
            elif ready:
                rhs = values.pop()
                lhs = values.pop()
                values.append(operators_reg[node.op](lhs, rhs))
            else:
                stack.append((node, True))
                stack.append((node.rhs, False))
                stack.append((node.lhs, False))
        return values.pop()

    def __str__(self) -> str:
        parts = []
        stack: list[Expr | str] = [self]
        while stack:
            node = stack.pop()
            if isinstance(node, str):
                parts.append(node)
            elif isinstance(node, Atom):
                parts.append(node.value)
            else:
                stack.extend([")", node.rhs, " ", node.lhs, f"({node.op} "])
        return "".join(parts)

    def __repr__(self) -> str:
        return f"BinaryOp({self})"

    def __eq__(self, other: object) -> bool:
        pairs: list[tuple[object, object]] = [(self, other)]
        while pairs:
            a, b = pairs.pop()
            if isinstance(a, BinaryOp) and isinstance(b, BinaryOp):
                if a.op != b.op:
                    return False
                pairs.append((a.rhs, b.rhs))
                pairs.append((a.lhs, b.lhs))
            elif isinstance(a, BinaryOp) or isinstance(b, BinaryOp) or a != b:
                return False
        return True

    __hash__ = None  # type: ignore


Expr = Atom | BinaryOp


def tokenize(code: str) -> Iterator[Token]:
    tokens = {
        "atom": r"[0-9A-Za-z]",
        "skip": r"[ \t\n\r\f]+",
        "op": r".",
    }
    regex = "|".join(f"(?P<{name}>{text})" for name, text in tokens.items())
    for mo in re.finditer(regex, code):
        kind = str(mo.lastgroup)
        if kind == "skip":
            continue
        yield Token(kind, mo.group(), (mo.start(), mo.end()))


class Parser:
    def __init__(self) -> None:
        self.source = ""
        self.tokens = TokenStream([], 0)

    def binding_power(self, token: Token) -> tuple[float, float]:
        try:
            return binding_powers[token.value]
        except KeyError:
            raise UnknownOperatorError(
                self.source, token.where, f"unknown operator '{token.value}'"
            )

    def expression(self, min_bp: float) -> Expr:
        token = self.tokens.next()
        if token.type != "atom":
            found = "end of input" if token.type == "end" else f"'{token.value}'"
            raise MalformedStartError(
                self.source, token.where, f"expected an operand, found {found}"
            )
        left: Expr = Atom(token.value, token.where)
        while True:
            token = self.tokens.peek()
            if token.type == "end":
                break
            if token.type != "op":
                raise UnexpectedTokenError(
                    self.source,
                    token.where,
                    f"expected an operator, found '{token.value}'",
                )
            lbp, rbp = self.binding_power(token)
            if lbp < min_bp:
                break
            self.tokens.next()
            left = BinaryOp(token.value, left, self.expression(rbp))
        return left

    def parse(self, source: str, tokens: list[Token]) -> Expr:
        try:
            self.source = source
            self.tokens = TokenStream(tokens, len(source))
            return self.expression(0.0)
        finally:
            self.tokens = TokenStream([], 0)


expr_parser = Parser()


def parse(code: str) -> Expr:
    return expr_parser.parse(code, list(tokenize(code)))


def evaluate(expr: Expr) -> float:
    return expr.eval()


def render(expr: Expr) -> str:
    return str(expr)


def format_number(value: float) -> str:
    if math.isfinite(value) and int(value) == value:
        return str(int(value))
    return str(value)


class Calculator:
    def __init__(self) -> None:
        self._keywords = ["exit"]

    def complete(self, text: str, state: int) -> str | None:
        matches = [k for k in self._keywords if k.startswith(text)]
        return matches[state] if state < len(matches) else None

    def execute(self, code: str) -> str | None:
        code = code.strip()
        if len(code) == 0:
            return None
        try:
            expr = parse(code)
            value = evaluate(expr)
            return f"{render(expr)} = {format_number(value)}"
        except BPCalcError as error:
            if not error.code:
                error.code = code
            raise error
        except Exception as error:
            raise BPCalcError(code, (0, len(code)), message=str(error))


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="bpcalc", description="a binding-power calculator"
    )
    parser.add_argument(
        "-q",
        "--quiet",
        dest="banner",
        action="store_false",
        help="don't print initial banner",
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"bpcalc {__version__}"
    )
    args = parser.parse_args()

    calc = Calculator()
    if not sys.stdin.isatty():
        exprs = (s.strip() for s in sys.stdin.readlines())
        for expr in exprs:
            if expr == "exit":
                break
            try:
                output = calc.execute(expr)
            except BPCalcError as error:
                display_error(error)
                return 1
            if output is not None:
                print(output)
        return 0
    if is_rl_available:
        readline.parse_and_bind("tab:complete")
        readline.set_completer(calc.complete)
    if args.banner:
        print(f"bpcalc {__version__}, a binding-power calculator")
        print("Copyright (c) 2024 zhengxyz123")
        print("This is an open source software released under MIT license.")
    while True:
        try:
            expr = input(">> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if expr == "exit":
            return 0
        try:
            output = calc.execute(expr)
        except BPCalcError as error:
            display_error(error)
            continue
        if output is not None:
            print(output)


if __name__ == "__main__":
    sys.exit(main())
