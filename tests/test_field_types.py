import pytest

from formmem.models.core import FIELD_TYPES
from formmem.utils.field_types import normalize_field_type


@pytest.mark.parametrize('raw,expected', [
    ('Drop-Down', 'select'),
    ('dropdown', 'select'),
    ('choice', 'select'),
    ('Multiple Choice', 'checkbox'),
    ('multiselect', 'checkbox'),
    ('long text', 'textarea'),
    ('upload', 'file'),
    ('image', 'file'),
    ('phone_number', 'phone'),
    ('telephone', 'phone'),
    ('datetime-local', 'datetime'),
    ('link', 'url'),
    ('numeric', 'number'),
    ('  EMAIL  ', 'email'),
])
def test_synonyms(raw, expected):
    assert normalize_field_type(raw) == expected


@pytest.mark.parametrize('field_type', FIELD_TYPES)
def test_canonical_types_pass_through(field_type):
    assert normalize_field_type(field_type) == field_type
    assert normalize_field_type(normalize_field_type(field_type)) == field_type


@pytest.mark.parametrize('raw', [42, None, 3.5, ['select'], {'type': 'select'}, '', 'signature', 'rating-stars'])
def test_unknown_defaults_to_text(raw):
    assert normalize_field_type(raw) == 'text'


def test_exactly_twelve_types():
    assert len(set(FIELD_TYPES)) == 12
