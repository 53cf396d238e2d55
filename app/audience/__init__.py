"""Audience resolution and preference filtering."""

from .exceptions import AudienceResolutionError
from .preferences import PREFERENCE_FIELDS, PreferenceFilter, preference_field_for
from .resolver import AudienceResolver

__all__ = [
    "AudienceResolver",
    "PreferenceFilter",
    "preference_field_for",
    "PREFERENCE_FIELDS",
    "AudienceResolutionError",
]
