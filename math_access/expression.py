"""
Expression Model

Tree representation of a mathematical expression parsed from MathML or LaTeX.
LaTeX is converted to MathML with latex2mathml and both paths share the
MathML tree builder, which uses BeautifulSoup.

Parsing never fails for callers of build_expression(): malformed markup
degrades to a single Text leaf holding the raw source verbatim.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import latex2mathml.converter
from bs4 import BeautifulSoup, Tag

from .config import PLACEHOLDER_TEXT

logger = logging.getLogger(__name__)


class MathParseError(ValueError):
    """Raised when math markup cannot be turned into an expression tree."""


class Granularity(Enum):
    """Navigation granularity of an expression node."""
    CHARACTER = "character"
    SYMBOL = "symbol"
    TERM = "term"
    STRUCTURE = "structure"


# =============================================================================
# Node variants
# =============================================================================

class ExpressionNode:
    """Behaviour shared by every node variant."""

    @property
    def children(self) -> Tuple['ExpressionNode', ...]:
        return ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self) -> Iterator['ExpressionNode']:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class Text(ExpressionNode):
    """Identifier, number or literal text."""
    value: str
    granularity: Optional[Granularity] = None

    def __post_init__(self):
        if self.granularity is None:
            level = Granularity.CHARACTER if len(self.value) == 1 else Granularity.SYMBOL
            object.__setattr__(self, 'granularity', level)


@dataclass(frozen=True)
class Operator(ExpressionNode):
    """Operator, relation, fence or separator."""
    symbol: str
    granularity: Granularity = Granularity.SYMBOL


@dataclass(frozen=True)
class Fraction(ExpressionNode):
    numerator: ExpressionNode
    denominator: ExpressionNode
    granularity: Granularity = Granularity.STRUCTURE

    @property
    def children(self) -> Tuple[ExpressionNode, ...]:
        return (self.numerator, self.denominator)


@dataclass(frozen=True)
class Root(ExpressionNode):
    """Square root, or an n-th root when index is set."""
    radicand: ExpressionNode
    index: Optional[ExpressionNode] = None
    granularity: Granularity = Granularity.STRUCTURE

    @property
    def children(self) -> Tuple[ExpressionNode, ...]:
        if self.index is None:
            return (self.radicand,)
        return (self.radicand, self.index)


@dataclass(frozen=True)
class Superscript(ExpressionNode):
    base: ExpressionNode
    exponent: ExpressionNode
    granularity: Granularity = Granularity.TERM

    @property
    def children(self) -> Tuple[ExpressionNode, ...]:
        return (self.base, self.exponent)


@dataclass(frozen=True)
class Subscript(ExpressionNode):
    base: ExpressionNode
    subscript: ExpressionNode
    granularity: Granularity = Granularity.TERM

    @property
    def children(self) -> Tuple[ExpressionNode, ...]:
        return (self.base, self.subscript)


@dataclass(frozen=True)
class Grouping(ExpressionNode):
    """Ordered run of nodes (an mrow, a fenced group, the whole expression)."""
    items: Tuple[ExpressionNode, ...]
    granularity: Granularity = Granularity.TERM

    @property
    def children(self) -> Tuple[ExpressionNode, ...]:
        return self.items


@dataclass(frozen=True)
class ParsedExpression:
    """Result of build_expression()."""
    root: ExpressionNode
    source: str  # 'mathml', 'latex' or 'verbatim'

    @property
    def degraded(self) -> bool:
        return self.source == 'verbatim'


# =============================================================================
# MathML tree builder
# =============================================================================

TOKEN_TAGS = {'mi', 'mn', 'mtext', 'ms'}

CONTAINER_TAGS = {
    'math', 'mrow', 'mstyle', 'mpadded', 'mphantom', 'menclose', 'merror',
    'mtable', 'mtr', 'mlabeledtr', 'mtd', 'semantics',
}

IGNORED_TAGS = {
    'annotation', 'annotation-xml', 'mspace', 'none', 'mprescripts',
    'maligngroup', 'malignmark',
}

# Required number of element children for script and fraction layouts
ARITY = {
    'mfrac': 2, 'mroot': 2,
    'msup': 2, 'msub': 2, 'msubsup': 3,
    'mover': 2, 'munder': 2, 'munderover': 3,
}

MATHML_TAGS = TOKEN_TAGS | CONTAINER_TAGS | set(ARITY) | {'mo', 'msqrt', 'mfenced'}


def _element_children(tag: Tag) -> List[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def _group(nodes: List[Optional[ExpressionNode]]) -> Optional[ExpressionNode]:
    """Collapse converted children into a single node."""
    items = [node for node in nodes if node is not None]
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    return Grouping(tuple(items))


def _convert(tag: Tag) -> Optional[ExpressionNode]:
    name = tag.name.lower()

    if name in IGNORED_TAGS:
        return None

    if name in TOKEN_TAGS or name == 'mo':
        value = tag.get_text().strip()
        if not value:
            return None
        return Operator(value) if name == 'mo' else Text(value)

    children = _element_children(tag)

    if name in ARITY:
        if len(children) != ARITY[name]:
            raise MathParseError(
                f"<{name}> expects {ARITY[name]} children, found {len(children)}"
            )
        parts = []
        for child in children:
            node = _convert(child)
            if node is None:
                raise MathParseError(f"<{name}> has an empty <{child.name}> slot")
            parts.append(node)

        if name == 'mfrac':
            return Fraction(parts[0], parts[1])
        if name == 'mroot':
            return Root(parts[0], index=parts[1])
        if name in ('msup', 'mover'):
            return Superscript(parts[0], parts[1])
        if name in ('msub', 'munder'):
            return Subscript(parts[0], parts[1])
        # msubsup / munderover
        return Superscript(Subscript(parts[0], parts[1]), parts[2])

    if name == 'msqrt':
        radicand = _group([_convert(child) for child in children])
        if radicand is None:
            raise MathParseError("<msqrt> has no content")
        return Root(radicand)

    if name == 'mfenced':
        opening = tag.get('open', '(')
        closing = tag.get('close', ')')
        separator = (tag.get('separators', ',') or '').strip()[:1]
        items: List[ExpressionNode] = []
        if opening:
            items.append(Operator(opening))
        converted = [node for node in (_convert(child) for child in children) if node is not None]
        for i, node in enumerate(converted):
            if i and separator:
                items.append(Operator(separator))
            items.append(node)
        if closing:
            items.append(Operator(closing))
        return Grouping(tuple(items)) if items else None

    if children:
        return _group([_convert(child) for child in children])

    # Unknown leaf elements still carry readable text
    value = tag.get_text().strip()
    return Text(value) if value else None


def parse_mathml(mathml: str) -> ExpressionNode:
    """
    Build an expression tree from presentation MathML.

    Args:
        mathml: MathML markup, with or without the <math> wrapper

    Returns:
        Root node of the expression tree

    Raises:
        MathParseError: if the markup is empty, has no MathML elements,
            or contains a layout element with the wrong number of children
    """
    if not mathml or not mathml.strip():
        raise MathParseError("empty MathML")

    soup = BeautifulSoup(mathml, 'html.parser')
    if not any(tag.name.lower() in MATHML_TAGS for tag in soup.find_all(True)):
        raise MathParseError("no MathML elements found")

    math_tag = soup.find('math')
    if math_tag is not None:
        node = _convert(math_tag)
    else:
        node = _group([_convert(child) for child in _element_children(soup)])

    if node is None:
        raise MathParseError("MathML contains no content")
    return node


def parse_latex(latex: str) -> ExpressionNode:
    """
    Build an expression tree from a LaTeX math expression.

    The LaTeX is converted to MathML with latex2mathml first.

    Raises:
        MathParseError: if the LaTeX is empty or cannot be converted
    """
    if not latex or not latex.strip():
        raise MathParseError("empty LaTeX")
    try:
        mathml = latex2mathml.converter.convert(latex)
    except Exception as e:
        raise MathParseError(f"latex2mathml could not convert {latex!r}: {e}") from e
    return parse_mathml(mathml)


def build_expression(latex: Optional[str] = None,
                     mathml: Optional[str] = None) -> ParsedExpression:
    """
    Best-effort expression model for an equation.

    MathML is preferred, then LaTeX. When neither parses the raw source is
    wrapped verbatim in a Text leaf. Never raises.

    Args:
        latex: LaTeX source (without delimiters)
        mathml: MathML source

    Returns:
        ParsedExpression describing the tree and where it came from
    """
    if mathml and mathml.strip():
        try:
            return ParsedExpression(parse_mathml(mathml), 'mathml')
        except (MathParseError, RecursionError) as e:
            logger.warning(f"MathML parse failed: {e}")

    if latex and latex.strip():
        try:
            return ParsedExpression(parse_latex(latex), 'latex')
        except (MathParseError, RecursionError) as e:
            logger.warning(f"LaTeX parse failed: {e}")

    raw = (latex or '').strip() or (mathml or '').strip() or PLACEHOLDER_TEXT
    return ParsedExpression(Text(raw, Granularity.TERM), 'verbatim')


def extract_alt_text(mathml: Optional[str]) -> Optional[str]:
    """Return the alttext (or aria-label) carried by MathML markup, if any."""
    if not mathml:
        return None
    soup = BeautifulSoup(mathml, 'html.parser')
    for attr in ('alttext', 'aria-label'):
        tag = soup.find(attrs={attr: True})
        if tag is not None:
            value = tag.get(attr, '').strip()
            if value:
                return value
    return None


def linear_text(node: ExpressionNode) -> str:
    """Compact single-line text for a node, e.g. '(1)/(2)' or 'x^2'."""
    if isinstance(node, Text):
        return node.value
    if isinstance(node, Operator):
        return node.symbol
    if isinstance(node, Fraction):
        num, den = linear_text(node.numerator), linear_text(node.denominator)
        if node.numerator.is_leaf and node.denominator.is_leaf:
            return f"{num}/{den}"
        return f"({num})/({den})"
    if isinstance(node, Root):
        radicand = linear_text(node.radicand)
        if node.index is None:
            return f"√({radicand})"
        return f"{linear_text(node.index)}√({radicand})"
    if isinstance(node, Superscript):
        exponent = linear_text(node.exponent)
        if not node.exponent.is_leaf:
            exponent = f"({exponent})"
        return f"{linear_text(node.base)}^{exponent}"
    if isinstance(node, Subscript):
        sub = linear_text(node.subscript)
        if not node.subscript.is_leaf:
            sub = f"({sub})"
        return f"{linear_text(node.base)}_{sub}"
    return ''.join(linear_text(child) for child in node.children)
