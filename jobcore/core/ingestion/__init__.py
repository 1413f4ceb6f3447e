"""
Filtered batch ingestion.

Exports: admit, parse_event, IngestionGateway, PayloadTransformer, BatchApplier
"""

from .batch_applier import BatchApplier
from .event_parser import parse_event
from .filter import admit
from .gateway import AcceptReport, IngestionGateway
from .transformer import PayloadTransformer

__all__ = [
    "AcceptReport",
    "BatchApplier",
    "IngestionGateway",
    "PayloadTransformer",
    "admit",
    "parse_event",
]
