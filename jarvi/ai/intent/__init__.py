"""
Intent Module - top-level classification of chat messages.

    from jarvi.ai.intent.classifier import IntentClassifier
    result = await IntentClassifier().classify("delete event id abc123")
    result.intent  # IntentType.DELETE_EVENT
"""

from jarvi.ai.intent.schemas import IntentClassification, IntentType

__all__ = ["IntentClassification", "IntentType"]
