"""
LECTIO - Source Integrations

Readers for the source XML dialects scripture editions are distributed in:
- Zefania XML (XMLBIBLE / BIBLEBOOK / CHAPTER / VERS)
- Beblia "Holy Bible XML Format" (bible / testament / book / chapter / verse)
- a lowercase OSIS-like book / chapter / verse layout
"""
from integrations.dialects import (
    DialectSpec,
    DIALECTS,
    get_dialect,
    supported_dialects,
)
from integrations.xml_parser import DialectParser, ParsedDocument

__all__ = [
    "DialectSpec",
    "DIALECTS",
    "get_dialect",
    "supported_dialects",
    "DialectParser",
    "ParsedDocument",
]
