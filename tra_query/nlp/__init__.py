"""Query understanding - rule-based parsing of bilingual train queries."""

from .query_parser import QueryParser, is_valid_for_train_search
from .time_expressions import extract_time

__all__ = ["QueryParser", "is_valid_for_train_search", "extract_time"]
