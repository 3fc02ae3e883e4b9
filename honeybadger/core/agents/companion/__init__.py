"""
Honey badger companion modules.
"""
from .personalities import (
    PersonalityProfile,
    PersonalityType,
    PhraseCategory,
    catalog,
    describe,
    has_phrases,
    pick_phrase,
    resolve,
)
from .responder import CompanionResponder

__all__ = [
    "PersonalityProfile",
    "PersonalityType",
    "PhraseCategory",
    "catalog",
    "describe",
    "has_phrases",
    "pick_phrase",
    "resolve",
    "CompanionResponder",
]
