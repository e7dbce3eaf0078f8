"""
Normalization of free-text field type hints to the canonical field types.
"""

from typing import Any

from ..models.core import FIELD_TYPES

DEFAULT_FIELD_TYPE = 'text'

FIELD_TYPE_SYNONYMS = {
    'dropdown': 'select',
    'drop-down': 'select',
    'choice': 'select',
    'multiple choice': 'checkbox',
    'multi-select': 'checkbox',
    'multiselect': 'checkbox',
    'boolean': 'checkbox',
    'radio_button': 'radio',
    'radio-button': 'radio',
    'long text': 'textarea',
    'longtext': 'textarea',
    'upload': 'file',
    'image': 'file',
    'phone_number': 'phone',
    'telephone': 'phone',
    'date-only': 'date',
    'date_time': 'datetime',
    'datetime-local': 'datetime',
    'email_address': 'email',
    'link': 'url',
    'numeric': 'number',
    'short text': 'text',
    'shorttext': 'text',
}


def normalize_field_type(raw: Any) -> str:
    """Map a type hint to one of FIELD_TYPES.

    Unknown hints and non-strings become 'text' so a bad hint never aborts
    generation.
    """
    if not isinstance(raw, str):
        return DEFAULT_FIELD_TYPE

    value = raw.strip().lower()
    if value in FIELD_TYPES:
        return value
    return FIELD_TYPE_SYNONYMS.get(value, DEFAULT_FIELD_TYPE)
