"""
Import file parsers module.

Parsers only split files into raw field mappings; validation happens in
services.import_validation_service.
"""

from parsers.haixun_parser import (
    parse_haixun_csv,
    HaixunParseResult,
    RawRow,
)
from parsers.promob_parser import (
    parse_promob_pdf,
    PromobParseResult,
    RawLabel,
)

__all__ = [
    "parse_haixun_csv",
    "HaixunParseResult",
    "RawRow",
    "parse_promob_pdf",
    "PromobParseResult",
    "RawLabel",
]
