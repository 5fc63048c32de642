"""NLP ports - Abstractions for query understanding.

The query parser turns a free-form utterance into a ParsedQuery. The
rule-based parser in nlp/query_parser.py is the only implementation;
the protocol lets services be tested with a stub parser.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..domain.models import ParsedQuery


class QueryParserPort(Protocol):
    """Port for utterance parsing.

    Implementation: nlp/query_parser.py (QueryParser)
    """

    def parse(self, text: str) -> ParsedQuery:
        """Parse an utterance into a structured query.

        Never raises: fields that cannot be extracted stay unset and the
        confidence score reflects what was found.

        Args:
            text: Raw user utterance (Chinese, English or mixed).

        Returns:
            ParsedQuery with confidence and the rules that fired.
        """
        ...
