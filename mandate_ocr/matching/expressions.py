"""
Known Expressions Module.

A KnownExpression is a mandate-scoped regular expression that
recognizes one vendor in document text. A PatternSet is the immutable,
compiled collection of a mandate's expressions; a refresh builds a new
PatternSet and swaps it in whole.

Author: Document Automation Team
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Pattern, Tuple

from mandate_ocr.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class KnownExpression:
    """
    Vendor-identifying text pattern.

    Attributes:
        expression_id: Store identifier of the expression
        vendor_id: Vendor recognized by the expression
        pattern: Regular expression source
        priority: Higher priority wins over lower
        case_sensitive: Match case exactly instead of ignoring it
        order: Insertion order, last tie breaker
    """
    expression_id: int
    vendor_id: str
    pattern: str
    priority: int = 0
    case_sensitive: bool = False
    order: int = 0


@dataclass(frozen=True)
class CompiledExpression:
    expression: KnownExpression
    regex: Pattern = field(repr=False, compare=False)


@dataclass(frozen=True)
class PatternSet:
    """
    Immutable compiled set of a mandate's known expressions.

    Attributes:
        mandate_id: Owning mandate
        version: Pattern-set version the set was loaded for
        compiled: Compiled expressions in insertion order
        rejected: Expression ids whose pattern did not compile
    """
    mandate_id: str
    version: Optional[str]
    compiled: Tuple[CompiledExpression, ...] = ()
    rejected: Tuple[int, ...] = ()

    @classmethod
    def build(
        cls,
        mandate_id: str,
        expressions: Iterable[KnownExpression],
        version: Optional[str] = None
    ) -> 'PatternSet':
        """
        Compile expressions into a pattern set.

        Expressions whose regex does not compile are logged and left out;
        one broken pattern never disables vendor matching for a mandate.

        Args:
            mandate_id: Owning mandate.
            expressions: Expressions in insertion order.
            version: Pattern-set version.

        Returns:
            New PatternSet.
        """
        compiled = []
        rejected = []

        for expression in sorted(expressions, key=lambda e: (e.order, e.expression_id)):
            flags = 0 if expression.case_sensitive else re.IGNORECASE
            try:
                regex = re.compile(expression.pattern, flags)
            except re.error as e:
                logger.error(
                    f"Mandate {mandate_id}: expression {expression.expression_id} "
                    f"({expression.vendor_id}) does not compile: {e}"
                )
                rejected.append(expression.expression_id)
                continue
            compiled.append(CompiledExpression(expression, regex))

        logger.debug(
            f"Mandate {mandate_id}: pattern set v{version} with {len(compiled)} expression(s), "
            f"{len(rejected)} rejected"
        )
        return cls(mandate_id, version, tuple(compiled), tuple(rejected))

    @classmethod
    def empty(cls, mandate_id: str) -> 'PatternSet':
        return cls(mandate_id, None)

    def __iter__(self) -> Iterator[CompiledExpression]:
        return iter(self.compiled)

    def __len__(self) -> int:
        return len(self.compiled)
