"""
Complexity Classifier

Cheap heuristic deciding whether an equation is substantial enough for the
full math-mode experience or should be spoken inline. Runs on every render,
so it inspects the LaTeX source lexically instead of parsing it.
"""

import logging
from typing import Optional, Set

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Trigger name -> lexical marker in LaTeX source
LATEX_TRIGGERS = {
    'plus': '+',
    'equals': '=',
    'fraction': '\\frac',
    'root': '\\sqrt',
    'superscript': '^',
    'cdot': '\\cdot',
    'times': '\\times',
}

DEFAULT_THRESHOLD = 2


def operator_triggers(latex: Optional[str]) -> Set[str]:
    """Return the names of the operator triggers present in LaTeX source."""
    if not latex:
        return set()
    return {name for name, marker in LATEX_TRIGGERS.items() if marker in latex}


def is_substantial(latex: Optional[str],
                   mathml: Optional[str] = None,
                   mathml_signal: Optional[bool] = None,
                   threshold: int = DEFAULT_THRESHOLD) -> bool:
    """
    Decide whether an equation warrants full math mode.

    Args:
        latex: LaTeX source, if any
        mathml: MathML source, if any (only consulted through mathml_signal)
        mathml_signal: caller-supplied complexity signal used when there is
            no LaTeX
        threshold: distinct triggers required

    Returns:
        True if the LaTeX holds at least `threshold` distinct triggers, or,
        without LaTeX, the MathML signal (False when none was supplied)
    """
    if latex and latex.strip():
        return len(operator_triggers(latex)) >= threshold
    if mathml:
        logger.debug("No LaTeX source; classifying from MathML signal")
    return bool(mathml_signal)


def mathml_complexity_signal(mathml: Optional[str],
                             threshold: int = DEFAULT_THRESHOLD) -> bool:
    """
    Complexity signal computed from MathML structure.

    Counts the same trigger families as the LaTeX classifier: fractions,
    roots, superscripts, '+', '=' and multiplication signs.
    """
    if not mathml or not mathml.strip():
        return False

    soup = BeautifulSoup(mathml, 'html.parser')
    found = set()
    if soup.find('mfrac'):
        found.add('fraction')
    if soup.find('msqrt') or soup.find('mroot'):
        found.add('root')
    if soup.find('msup') or soup.find('msubsup'):
        found.add('superscript')
    for mo in soup.find_all('mo'):
        symbol = mo.get_text().strip()
        if symbol == '+':
            found.add('plus')
        elif symbol == '=':
            found.add('equals')
        elif symbol in ('×', '⋅', '·'):
            found.add('times')
    return len(found) >= threshold
