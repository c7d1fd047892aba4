"""Whitelisted Wilkinson formula grammar and design matrices.

Formula text is parsed into a :class:`FormulaSpec`; nothing is evaluated.
Supported syntax::

    @formula(0 ~ 1 + a + b^2 + a & b + a * b + (1 + a | subject))

``0`` removes the intercept, ``1`` keeps it (the default). ``a * b``
expands to ``a + b + a & b``. A parenthesised ``terms | group`` adds a
random effect. The left-hand side is accepted and ignored.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from erpforge.errors import ExpressionParseError

_TOKEN_RE = re.compile(
    r"\s*(?:(?P<macro>@formula)|(?P<number>\d+(?:\.\d*)?)|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[~+&*^()|]))"
)

CODINGS = ("DummyCoding", "EffectsCoding")
MAX_EXPONENT = 5


@dataclass(frozen=True)
class Factor:
    name: str
    power: int = 1

    @property
    def label(self) -> str:
        return self.name if self.power == 1 else f"{self.name}^{self.power}"


@dataclass(frozen=True)
class Term:
    """Interaction of one or more factors (a main effect has one)."""

    factors: Tuple[Factor, ...]

    @property
    def label(self) -> str:
        return " & ".join(factor.label for factor in self.factors)


@dataclass(frozen=True)
class RandomEffect:
    intercept: bool
    terms: Tuple[Term, ...]
    group: str


@dataclass(frozen=True)
class FormulaSpec:
    intercept: bool
    terms: Tuple[Term, ...]
    random_effects: Tuple[RandomEffect, ...] = ()

    @property
    def variables(self) -> Tuple[str, ...]:
        names: List[str] = []
        for term in self.terms:
            names.extend(f.name for f in term.factors)
        for effect in self.random_effects:
            for term in effect.terms:
                names.extend(f.name for f in term.factors)
        return tuple(dict.fromkeys(names))


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------
def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    position = 0
    stripped = text.rstrip()
    while position < len(stripped):
        match = _TOKEN_RE.match(stripped, position)
        if match is None or match.end() == position:
            raise ExpressionParseError(
                f"Unexpected character {stripped[position:].strip()[:1]!r} in formula",
                details={"formula": text, "position": position},
            )
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        position = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0

    def peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def next(self) -> Tuple[str, str]:
        token = self.peek()
        if token is None:
            raise ExpressionParseError("Unexpected end of formula", details={"formula": self.text})
        self.index += 1
        return token

    def expect(self, value: str) -> None:
        kind, token = self.next()
        if token != value:
            raise ExpressionParseError(
                f"Expected {value!r} but found {token!r} in formula",
                details={"formula": self.text},
            )

    def accept(self, value: str) -> bool:
        token = self.peek()
        if token is not None and token[1] == value:
            self.index += 1
            return True
        return False

    def parse(self) -> FormulaSpec:
        wrapped = self.accept("@formula")
        if wrapped:
            self.expect("(")
        kind, _ = self.next()
        if kind not in ("number", "name"):
            raise ExpressionParseError("Formula must start with a response, e.g. '0 ~ 1'")
        self.expect("~")
        intercept, terms, random_effects = self.rhs(allow_random=True)
        if wrapped:
            self.expect(")")
        if self.peek() is not None:
            raise ExpressionParseError(
                f"Unexpected {self.peek()[1]!r} after end of formula",
                details={"formula": self.text},
            )
        return FormulaSpec(intercept, tuple(terms), tuple(random_effects))

    def rhs(self, allow_random: bool) -> Tuple[bool, List[Term], List[RandomEffect]]:
        intercept = True
        terms: List[Term] = []
        random_effects: List[RandomEffect] = []
        while True:
            token = self.peek()
            if token is None:
                raise ExpressionParseError("Missing term in formula", details={"formula": self.text})
            if token[1] == "(":
                if not allow_random:
                    raise ExpressionParseError("Nested random effects are not supported")
                self.next()
                random_effects.append(self.random_effect())
            elif token[0] == "number":
                self.next()
                if token[1] in ("0", "0."):
                    intercept = False
                elif token[1] in ("1", "1."):
                    intercept = True
                else:
                    raise ExpressionParseError(f"Unexpected constant {token[1]!r} in formula")
            else:
                for term in self.product():
                    if term not in terms:
                        terms.append(term)
            if not self.accept("+"):
                break
        return intercept, terms, random_effects

    def random_effect(self) -> RandomEffect:
        intercept, terms, _ = self.rhs(allow_random=False)
        self.expect("|")
        kind, group = self.next()
        if kind != "name":
            raise ExpressionParseError(f"Random effect grouping must be a variable, got {group!r}")
        self.expect(")")
        return RandomEffect(intercept, tuple(terms), group)

    def product(self) -> List[Term]:
        groups = [self.interaction()]
        while self.accept("*"):
            groups.append(self.interaction())
        if len(groups) == 1:
            return groups
        expanded: List[Term] = []
        for size in range(1, len(groups) + 1):
            for combo in itertools.combinations(groups, size):
                factors = tuple(itertools.chain.from_iterable(t.factors for t in combo))
                expanded.append(Term(factors))
        return expanded

    def interaction(self) -> Term:
        factors = [self.factor()]
        while self.accept("&"):
            factors.append(self.factor())
        return Term(tuple(factors))

    def factor(self) -> Factor:
        kind, name = self.next()
        if kind != "name":
            raise ExpressionParseError(f"Expected a variable name but found {name!r} in formula")
        power = 1
        if self.accept("^"):
            kind, value = self.next()
            if kind != "number" or not value.isdigit() or int(value) < 1:
                raise ExpressionParseError(f"Exponent must be a positive integer, got {value!r}")
            power = int(value)
            if power > MAX_EXPONENT:
                raise ExpressionParseError(
                    f"Exponent {power} is too large; at most {MAX_EXPONENT} is supported"
                )
        return Factor(name, power)


def parse_formula(text: str) -> FormulaSpec:
    """Parse formula text.

    Raises:
        ExpressionParseError: If the text does not match the grammar.
    """
    if not isinstance(text, str):
        raise ExpressionParseError(f"Formula must be text, got {type(text).__name__}")
    if not text or not text.strip():
        raise ExpressionParseError("Formula text is empty")
    return _Parser(text.strip()).parse()


# ----------------------------------------------------------------------
# Design matrices
# ----------------------------------------------------------------------
def _factor_columns(
    factor: Factor,
    events: pd.DataFrame,
    levels: Mapping[str, Sequence[str]],
    contrasts: Mapping[str, str],
) -> List[Tuple[str, np.ndarray]]:
    if factor.name not in events.columns:
        raise ExpressionParseError(
            f"Unknown variable '{factor.name}' in formula",
            details={"available": list(events.columns)},
        )
    column = events[factor.name]
    categorical = factor.name in levels or not pd.api.types.is_numeric_dtype(column)
    if not categorical:
        return [(factor.label, column.to_numpy(dtype=np.float64) ** factor.power)]
    if factor.power != 1:
        raise ExpressionParseError(f"Cannot raise categorical variable '{factor.name}' to a power")
    variable_levels = list(levels.get(factor.name) or sorted(column.unique()))
    coding = contrasts.get(factor.name, "DummyCoding")
    if coding not in CODINGS:
        raise ExpressionParseError(f"Unknown contrast coding '{coding}'")
    values = column.astype(str).to_numpy()
    reference = values == str(variable_levels[0])
    columns = []
    for level in variable_levels[1:]:
        hit = (values == str(level)).astype(np.float64)
        if coding == "EffectsCoding":
            hit = hit - reference.astype(np.float64)
        columns.append((f"{factor.name}: {level}", hit))
    return columns


def term_columns(
    intercept: bool,
    terms: Sequence[Term],
    events: pd.DataFrame,
    levels: Mapping[str, Sequence[str]],
    contrasts: Mapping[str, str],
) -> Tuple[List[str], np.ndarray]:
    """Column labels and ``(n_events, n_columns)`` matrix for a term list."""
    n = len(events)
    labels: List[str] = []
    columns: List[np.ndarray] = []
    if intercept:
        labels.append("(Intercept)")
        columns.append(np.ones(n))
    for term in terms:
        per_factor = [_factor_columns(f, events, levels, contrasts) for f in term.factors]
        for combo in itertools.product(*per_factor):
            labels.append(" & ".join(label for label, _ in combo))
            product = np.ones(n)
            for _, values in combo:
                product = product * values
            columns.append(product)
    matrix = np.column_stack(columns) if columns else np.zeros((n, 0))
    return labels, matrix


def design_matrix(
    spec: FormulaSpec,
    events: pd.DataFrame,
    levels: Optional[Mapping[str, Sequence[str]]] = None,
    contrasts: Optional[Mapping[str, str]] = None,
) -> Tuple[List[str], np.ndarray]:
    """Fixed-effects design matrix for ``spec`` evaluated on ``events``."""
    return term_columns(spec.intercept, spec.terms, events, levels or {}, contrasts or {})


def random_design_matrices(
    spec: FormulaSpec,
    events: pd.DataFrame,
    levels: Optional[Mapping[str, Sequence[str]]] = None,
    contrasts: Optional[Mapping[str, str]] = None,
) -> Dict[str, np.ndarray]:
    """Grouping variable -> random-effects matrix ``Z``."""
    matrices: Dict[str, np.ndarray] = {}
    for effect in spec.random_effects:
        if effect.group not in events.columns:
            raise ExpressionParseError(
                f"Grouping variable '{effect.group}' is not part of the design",
                details={"available": list(events.columns)},
            )
        _, matrix = term_columns(
            effect.intercept, effect.terms, events, levels or {}, contrasts or {}
        )
        matrices[effect.group] = matrix
    return matrices
