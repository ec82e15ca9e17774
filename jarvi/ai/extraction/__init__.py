"""
Extraction Module - from chat text to structured entities.

Pipeline:
    text -> ClauseSegmenter -> TemporalTokenParser (per clause)
         -> MultiEventExtractor -> ExtractionResult(events, diagnostics)

Tasks and update/delete references have their own small extractors
(tasks.py, references.py).
"""

from jarvi.ai.extraction.extractor import MultiEventExtractor, multi_event_extractor
from jarvi.ai.extraction.schemas import (
    BoundaryReconciled,
    EventChange,
    EventDescriptor,
    ExtractionResult,
    QueryWindow,
    RawQuery,
    TaskDescriptor,
    TaskPriority,
)
from jarvi.ai.extraction.segmenter import Clause, ClauseRole, ClauseSegmenter
from jarvi.ai.extraction.tokens import (
    ClockTime,
    MeridiemResolver,
    TemporalToken,
    TemporalTokenParser,
    TokenKind,
)

__all__ = [
    "BoundaryReconciled",
    "Clause",
    "ClauseRole",
    "ClauseSegmenter",
    "ClockTime",
    "EventChange",
    "EventDescriptor",
    "ExtractionResult",
    "MeridiemResolver",
    "MultiEventExtractor",
    "QueryWindow",
    "RawQuery",
    "TaskDescriptor",
    "TaskPriority",
    "TemporalToken",
    "TemporalTokenParser",
    "TokenKind",
    "multi_event_extractor",
]
