"""
Sanitization of untrusted generator output into a validated form draft.
"""

import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..models.core import CHOICE_FIELD_TYPES, FieldOption, FormDraft, FormField
from ..models.validation import FormContract
from .field_types import normalize_field_type
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = 'Untitled form'
DEFAULT_OPTION = {'label': 'Option 1', 'value': 'option-1'}


class SchemaShapeError(Exception):
    """Raised when the generated payload is not an object."""
    pass


class SchemaValidationError(Exception):
    """Raised when an assembled form fails the form contract."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _clean_str(value: Any) -> Optional[str]:
    """Trimmed string, or None when the value is not a non-blank string."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _decode_options(raw_options: Any, field_label: str, dropped: List[str]) -> List[Dict[str, str]]:
    options = []
    for position, option_data in enumerate(raw_options if isinstance(raw_options, list) else []):
        if not isinstance(option_data, dict):
            dropped.append(f'{field_label}: option {position + 1} is not an object')
            continue

        label = _clean_str(option_data.get('label'))
        value = _clean_str(option_data.get('value'))
        if not label or not value:
            dropped.append(f'{field_label}: option {position + 1} lacks a label or value')
            continue
        options.append({'label': label, 'value': value})

    if not options:
        options.append(dict(DEFAULT_OPTION))
    return options


def _decode_field(field_data: Dict[str, Any], position: int, seen_ids: set, id_factory: Callable[[], str],
                  dropped: List[str]) -> Dict[str, Any]:
    label = _clean_str(field_data.get('label')) or f'Field {position + 1}'

    field_id = field_data.get('id')
    if not isinstance(field_id, str) or not field_id.strip():
        field_id = id_factory()
    elif field_id in seen_ids:
        dropped.append(f'{label}: duplicate id {field_id} replaced')
        field_id = id_factory()
    seen_ids.add(field_id)

    field_type = normalize_field_type(field_data.get('type'))
    decoded = {'id': field_id, 'label': label, 'type': field_type, 'required': bool(field_data.get('required'))}

    placeholder = _clean_str(field_data.get('placeholder'))
    if placeholder:
        decoded['placeholder'] = placeholder
    description = _clean_str(field_data.get('description'))
    if description:
        decoded['description'] = description

    accept = field_data.get('accept')
    if isinstance(accept, list):
        accepted = [item for item in accept if isinstance(item, str) and item.strip()]
        if accepted:
            decoded['accept'] = accepted

    if isinstance(field_data.get('multiline'), bool):
        decoded['multiline'] = field_data['multiline']

    if field_type in CHOICE_FIELD_TYPES:
        decoded['options'] = _decode_options(field_data.get('options'), label, dropped)

    return decoded


def decode_form(raw: Any, fallback_label: str, id_factory: Callable[[], str] = _new_id) -> Tuple[FormDraft, List[str]]:
    """Decode an untyped generator payload into a form draft.

    Malformed fields and options are dropped or defaulted rather than failing
    the whole form; each decision is reported in the returned list.

    Args:
        raw: Parsed JSON value from the generator
        fallback_label: Label of the textarea used when no field survives
        id_factory: Mints ids for fields that lack one

    Returns:
        Tuple of (draft, dropped) where dropped describes every discarded element

    Raises:
        SchemaShapeError: If raw is not an object
        SchemaValidationError: If the assembled form fails FormContract
    """
    if not isinstance(raw, dict):
        raise SchemaShapeError(f'Generated form payload is not an object: {type(raw).__name__}')

    dropped: List[str] = []
    raw_fields = raw.get('fields')
    if not isinstance(raw_fields, list):
        raw_fields = []

    fields = []
    seen_ids = set()
    for position, field_data in enumerate(raw_fields):
        if not isinstance(field_data, dict):
            dropped.append(f'field {position + 1} is not an object')
            continue
        fields.append(_decode_field(field_data, position, seen_ids, id_factory, dropped))

    if not fields:
        fields.append({'id': id_factory(), 'label': fallback_label, 'type': 'textarea'})

    assembled = {'title': _clean_str(raw.get('title')) or DEFAULT_TITLE, 'fields': fields}
    for key in ('description', 'purpose'):
        value = _clean_str(raw.get(key))
        if value:
            assembled[key] = value

    try:
        contract = FormContract.model_validate(assembled)
    except ValidationError as e:
        raise SchemaValidationError(f'Sanitized form failed validation: {e}') from e

    draft = FormDraft(title=contract.title,
                      description=contract.description,
                      purpose=contract.purpose,
                      fields=[
                          FormField(id=f.id,
                                    label=f.label,
                                    type=f.type,
                                    required=f.required,
                                    placeholder=f.placeholder,
                                    description=f.description,
                                    options=[FieldOption(label=o.label, value=o.value) for o in f.options] if f.options else None,
                                    accept=f.accept,
                                    multiline=f.multiline) for f in contract.fields
                      ])
    return draft, dropped


def sanitize_generated_form(raw: Any, fallback_label: str, id_factory: Callable[[], str] = _new_id) -> FormDraft:
    """Decode a generator payload, logging anything that was dropped."""
    draft, dropped = decode_form(raw, fallback_label, id_factory=id_factory)
    for decision in dropped:
        logger.debug(f'Sanitizer dropped {decision}')
    if dropped:
        logger.info(f'Sanitizer kept {len(draft.fields)} fields, dropped {len(dropped)} malformed elements')
    return draft
