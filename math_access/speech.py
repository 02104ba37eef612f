"""
Speech Renderer

Two renderings of an equation into speakable English:

- speakable(): the lexical renderer. A fixed, order-sensitive token
  substitution over LaTeX source. Its output for the supported token set is
  a compatibility floor and must not change.
- render_clauses() / render_expression(): the structural renderer. Walks the
  expression tree and produces comma-separated clauses such as
  "fraction, 1, over, 2, end fraction", which the part segmenter turns into
  navigable parts.
"""

import html
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import PLACEHOLDER_TEXT
from .expression import (
    ExpressionNode,
    Fraction,
    Granularity,
    Grouping,
    Operator,
    Root,
    Subscript,
    Superscript,
    Text,
    linear_text,
)


class Verbosity(Enum):
    BRIEF = "brief"
    VERBOSE = "verbose"


# =============================================================================
# Lexical renderer
# =============================================================================

# Order matters: longer, more specific tokens come before their prefixes.
LEXICAL_SUBSTITUTIONS = [
    ('\\frac{', 'fraction of '),
    ('}{', ' over '),
    ('}', ''),
    ('\\sqrt{', 'square root of '),
    ('\\sqrt', 'square root of '),
    ('^{', ' to the power of '),
    ('^', ' to the power of '),
    ('_{', ' sub '),
    ('_', ' sub '),
    ('\\cdot', ' times '),
    ('\\times', ' times '),
    ('{', ''),
]


def speakable(source: Optional[str], verbosity: Verbosity = Verbosity.BRIEF) -> str:
    """
    Convert LaTeX source to speakable text by token substitution.

    Args:
        source: LaTeX expression (without delimiters)
        verbosity: BRIEF returns the substituted text, VERBOSE wraps it in
            "Start equation. ... End equation."

    Returns:
        Speakable string
    """
    text = source or ''
    for token, replacement in LEXICAL_SUBSTITUTIONS:
        text = text.replace(token, replacement)

    if verbosity == Verbosity.VERBOSE:
        return f"Start equation. {text}. End equation."
    return text


# =============================================================================
# Structural renderer
# =============================================================================

@dataclass(frozen=True)
class Clause:
    """One spoken clause of a structural rendering."""
    text: str
    display: str
    granularity: Granularity


OPERATOR_WORDS = {
    '+': 'plus', '-': 'minus', '−': 'minus', '–': 'minus',
    '=': 'equals', '≠': 'not equal to', '≈': 'approximately',
    '×': 'times', '·': 'times', '⋅': 'times', '*': 'times', '∗': 'times',
    '÷': 'divided by', '/': 'divided by',
    '±': 'plus or minus', '∓': 'minus or plus',
    '<': 'less than', '>': 'greater than',
    '≤': 'less than or equal to', '≥': 'greater than or equal to',
    '(': 'open paren', ')': 'close paren',
    '[': 'open bracket', ']': 'close bracket',
    '{': 'open brace', '}': 'close brace',
    '|': 'vertical bar', ',': 'comma', '!': 'factorial', '′': 'prime',
    '∞': 'infinity', '∂': 'partial', '∇': 'nabla',
    '∈': 'in', '∉': 'not in', '∪': 'union', '∩': 'intersection',
    '→': 'approaches', '⇒': 'implies', '%': 'percent', '°': 'degrees',
    # Invisible operators: function application, times, separator, plus
    '\u2061': '', '\u2062': 'times', '\u2063': '', '\u2064': 'plus',
}

LARGE_OPERATORS = {
    '∑': 'sum', '∏': 'product', '∫': 'integral', '∮': 'contour integral',
}

GREEK_WORDS = {
    'α': 'alpha', 'β': 'beta', 'γ': 'gamma', 'δ': 'delta', 'ε': 'epsilon',
    'ϵ': 'epsilon', 'ζ': 'zeta', 'η': 'eta', 'θ': 'theta', 'ι': 'iota',
    'κ': 'kappa', 'λ': 'lambda', 'μ': 'mu', 'ν': 'nu', 'ξ': 'xi', 'π': 'pi',
    'ρ': 'rho', 'σ': 'sigma', 'τ': 'tau', 'υ': 'upsilon', 'φ': 'phi',
    'ϕ': 'phi', 'χ': 'chi', 'ψ': 'psi', 'ω': 'omega',
    'Γ': 'Gamma', 'Δ': 'Delta', 'Θ': 'Theta', 'Λ': 'Lambda', 'Ξ': 'Xi',
    'Π': 'Pi', 'Σ': 'Sigma', 'Φ': 'Phi', 'Ψ': 'Psi', 'Ω': 'Omega',
}

FUNCTION_WORDS = {
    'sin': 'sine of', 'cos': 'cosine of', 'tan': 'tangent of',
    'sec': 'secant of', 'csc': 'cosecant of', 'cot': 'cotangent of',
    'log': 'log of', 'ln': 'natural log of', 'exp': 'exponential of',
    'det': 'determinant of', 'max': 'max of', 'min': 'min of',
    'lim': 'limit of',
}

ACCENT_WORDS = {
    '^': 'hat', 'ˆ': 'hat', '¯': 'bar', '‾': 'bar', '_': 'bar',
    '→': 'vector', '\u20d7': 'vector', '~': 'tilde', '˜': 'tilde',
    '˙': 'dot', '¨': 'double dot', '′': 'prime',
}

EXPONENT_WORDS = {
    '2': 'squared',
    '3': 'cubed',
    '4': 'to the fourth',
    '5': 'to the fifth',
    'n': 'to the n',
    'k': 'to the k',
    '-1': 'to the negative one',
    '-2': 'to the negative two',
}

ROOT_INDEX_WORDS = {
    '2': 'square', '3': 'cube', '4': 'fourth', '5': 'fifth', '6': 'sixth',
    '7': 'seventh', '8': 'eighth', '9': 'ninth', '10': 'tenth', 'n': 'n th',
}

SIMPLE_EXPONENT = re.compile(r'^-?\w+$')


def _word(symbol: str) -> str:
    if symbol in OPERATOR_WORDS:
        return OPERATOR_WORDS[symbol]
    if symbol in LARGE_OPERATORS:
        return LARGE_OPERATORS[symbol]
    if symbol in GREEK_WORDS:
        return GREEK_WORDS[symbol]
    return FUNCTION_WORDS.get(symbol, symbol)


def _keyword(text: str, granularity: Granularity = Granularity.STRUCTURE,
             display: Optional[str] = None) -> Clause:
    return Clause(text, display if display is not None else text, granularity)


def _large_operator(node: ExpressionNode) -> Optional[str]:
    if isinstance(node, Operator) and node.symbol in LARGE_OPERATORS:
        return LARGE_OPERATORS[node.symbol]
    return None


def _is_limit(node: ExpressionNode) -> bool:
    return isinstance(node, (Operator, Text)) and linear_text(node) == 'lim'


def _exponent_phrase(exponent: ExpressionNode) -> Optional[str]:
    """Single-phrase reading of a simple exponent, or None if compound."""
    text = linear_text(exponent).replace('−', '-').strip()
    simple = exponent.is_leaf or (
        isinstance(exponent, Grouping)
        and len(exponent.items) == 2
        and isinstance(exponent.items[0], Operator)
        and exponent.items[1].is_leaf
    )
    if not simple or not SIMPLE_EXPONENT.match(text):
        return None
    if text in EXPONENT_WORDS:
        return EXPONENT_WORDS[text]
    if text.startswith('-'):
        return f"to the negative {_word(text[1:])}"
    return f"to the power of {_word(text)}"


def _render_superscript(node: Superscript) -> List[Clause]:
    base, exponent = node.base, node.exponent

    # Large operator with both limits: sum from i = 1 to n of
    if isinstance(base, Subscript):
        word = _large_operator(base.base)
        if word:
            return ([_keyword(f"{word} from", display=linear_text(node))]
                    + _render(base.subscript)
                    + [_keyword('to', Granularity.SYMBOL)]
                    + _render(exponent)
                    + [_keyword('of', Granularity.SYMBOL)])

    word = _large_operator(base)
    if word:
        return ([_keyword(f"{word} to", display=linear_text(node))]
                + _render(exponent)
                + [_keyword('of', Granularity.SYMBOL)])

    # Accents drawn over a symbol (hat, bar, vector)
    if isinstance(exponent, Operator):
        accent = ACCENT_WORDS.get(exponent.symbol, f"with {_word(exponent.symbol)}")
        if base.is_leaf:
            return [Clause(f"{_word(linear_text(base))} {accent}", linear_text(node), node.granularity)]
        return _render(base) + [_keyword(accent, Granularity.SYMBOL)]

    phrase = _exponent_phrase(exponent)
    if phrase is not None:
        if base.is_leaf:
            return [Clause(f"{_word(linear_text(base))} {phrase}", linear_text(node), node.granularity)]
        return _render(base) + [_keyword(phrase, Granularity.TERM, linear_text(exponent))]

    return (_render(base)
            + [_keyword('to the power of', display=linear_text(exponent))]
            + _render(exponent)
            + [_keyword('end exponent')])


def _render_subscript(node: Subscript) -> List[Clause]:
    base, sub = node.base, node.subscript

    word = _large_operator(base)
    if word:
        return ([_keyword(f"{word} over", display=linear_text(node))]
                + _render(sub)
                + [_keyword('of', Granularity.SYMBOL)])

    if _is_limit(base):
        return ([_keyword('limit as', display=linear_text(node))]
                + _render(sub)
                + [_keyword('of', Granularity.SYMBOL)])

    if base.is_leaf and sub.is_leaf:
        text = f"{_word(linear_text(base))} sub {_word(linear_text(sub))}"
        return [Clause(text, linear_text(node), node.granularity)]

    return _render(base) + [_keyword('sub', Granularity.SYMBOL)] + _render(sub)


def _render_grouping(node: Grouping) -> List[Clause]:
    clauses: List[Clause] = []
    previous: Optional[ExpressionNode] = None
    for item in node.items:
        rendered = _render(item)
        if not rendered:
            continue
        # Adjacent operands multiply: 2x, ab, 2\sqrt{x}
        if (previous is not None
                and not isinstance(previous, Operator)
                and not isinstance(item, Operator)
                and clauses
                and not clauses[-1].text.endswith('of')):
            clauses.append(_keyword('times', Granularity.SYMBOL, '×'))
        clauses.extend(rendered)
        previous = item
    return clauses


def _render(node: ExpressionNode) -> List[Clause]:
    if isinstance(node, Text):
        return [Clause(_word(node.value), node.value, node.granularity)]

    if isinstance(node, Operator):
        word = _word(node.symbol)
        if not word:
            return []
        return [Clause(word, node.symbol, node.granularity)]

    if isinstance(node, Fraction):
        return ([_keyword('fraction', display=linear_text(node))]
                + _render(node.numerator)
                + [_keyword('over', Granularity.SYMBOL, '/')]
                + _render(node.denominator)
                + [_keyword('end fraction')])

    if isinstance(node, Root):
        if node.index is None:
            opening = 'square root of'
        else:
            index = linear_text(node.index).strip()
            if index in ROOT_INDEX_WORDS:
                opening = f"{ROOT_INDEX_WORDS[index]} root of"
            else:
                opening = f"{_word(index)} th root of"
        return ([_keyword(opening, display=linear_text(node))]
                + _render(node.radicand)
                + [_keyword('end root')])

    if isinstance(node, Superscript):
        return _render_superscript(node)

    if isinstance(node, Subscript):
        return _render_subscript(node)

    if isinstance(node, Grouping):
        return _render_grouping(node)

    return []


def render_clauses(node: ExpressionNode) -> List[Clause]:
    """
    Render an expression tree into ordered spoken clauses.

    Args:
        node: Root of the expression tree

    Returns:
        List of clauses; empty only when the tree holds nothing speakable
    """
    return [clause for clause in _render(node) if clause.text.strip()]


def render_expression(node: ExpressionNode) -> str:
    """Render an expression tree as comma-separated spoken text."""
    return ', '.join(clause.text for clause in render_clauses(node))


# =============================================================================
# Reading preparation
# =============================================================================

READING_PREFIXES = ('Equation:', 'equation:', 'Math:', 'math:')

_UNITS = r'(?:square\s*)?(?:units|meters|feet|cm|mm|inches|m|ft)?'

# Trailing answers that would give away a worksheet solution
ANSWER_PATTERNS = [
    re.compile(r'[,.]?\s*(?:the\s+)?(?:sum|total|answer|result|area|volume|perimeter|value)\s+'
               r'(?:is|are|=|equals)\s+[\d,.]+\s*' + _UNITS + r'\.?', re.IGNORECASE),
    re.compile(r'\s+is\s+[\d,.]+\s*' + _UNITS + r'\.?$', re.IGNORECASE),
    re.compile(r'\s*(?:which|that|this)\s+(?:is|are|equals)\s+[\d,.]+.*$', re.IGNORECASE),
]


def prepare_text_for_reading(text: Optional[str],
                             placeholder: str = PLACEHOLDER_TEXT) -> str:
    """
    Clean spoken equation text before it is read in full.

    Strips "Equation:" style prefixes, trailing answers, doubled commas and
    trailing separators. Returns "" when nothing meaningful is left.
    """
    cleaned = html.unescape(text or '').strip()

    for prefix in READING_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):].strip()

    for pattern in ANSWER_PATTERNS:
        cleaned = pattern.sub('', cleaned)

    cleaned = re.sub(r'\s{2,}', ' ', cleaned)
    cleaned = re.sub(r',\s*,', ',', cleaned).strip()
    cleaned = cleaned.rstrip(',; ').strip()

    if not cleaned or cleaned.lower() == placeholder.lower():
        return ''
    return cleaned
