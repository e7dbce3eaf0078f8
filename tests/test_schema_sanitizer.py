import itertools

import pytest

from formmem.models.core import FieldOption, FormField
from formmem.utils.schema_sanitizer import SchemaShapeError, SchemaValidationError, decode_form, sanitize_generated_form


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f'gen-{next(counter)}'


def test_empty_object_gets_fallback_textarea():
    draft = sanitize_generated_form({}, 'X', id_factory=sequential_ids())

    assert draft.title == 'Untitled form'
    assert draft.description is None
    assert draft.purpose is None
    assert len(draft.fields) == 1
    assert draft.fields[0].type == 'textarea'
    assert draft.fields[0].label == 'X'
    assert draft.fields[0].id == 'gen-1'


def test_choice_without_options_gets_default_option():
    draft = sanitize_generated_form({'fields': [{'type': 'choice'}]}, 'X')

    assert len(draft.fields) == 1
    field = draft.fields[0]
    assert field.type == 'select'
    assert field.label == 'Field 1'
    assert field.options == [FieldOption(label='Option 1', value='option-1')]


@pytest.mark.parametrize('raw', [42, None, 'a form', ['fields'], True])
def test_non_object_is_shape_error(raw):
    with pytest.raises(SchemaShapeError):
        sanitize_generated_form(raw, 'X')


def test_malformed_fields_are_dropped_not_fatal():
    raw = {
        'title': '  Survey  ',
        'fields': ['not a field', 7, None, {
            'label': ' Name ',
            'type': 'short text',
            'required': 1
        }],
    }
    draft, dropped = decode_form(raw, 'X', id_factory=sequential_ids())

    assert draft.title == 'Survey'
    assert [f.label for f in draft.fields] == ['Name']
    assert draft.fields[0].type == 'text'
    assert draft.fields[0].required is True
    assert len(dropped) == 3


def test_positional_label_counts_original_position():
    draft = sanitize_generated_form({'fields': ['junk', {'type': 'email'}]}, 'X')
    assert draft.fields[0].label == 'Field 2'


def test_optional_attributes_are_filtered():
    raw = {
        'fields': [{
            'id': 'resume',
            'label': 'Resume',
            'type': 'upload',
            'placeholder': '   ',
            'description': ' PDF only ',
            'accept': ['.pdf', '', 3, '.docx'],
            'multiline': 'yes',
        }, {
            'id': 'notes',
            'label': 'Notes',
            'type': 'textarea',
            'multiline': False,
            'accept': 'not-a-list',
        }]
    }
    resume, notes = sanitize_generated_form(raw, 'X').fields

    assert resume.type == 'file'
    assert resume.placeholder is None
    assert resume.description == 'PDF only'
    assert resume.accept == ['.pdf', '.docx']
    assert resume.multiline is None
    assert notes.multiline is False
    assert notes.accept is None


def test_invalid_options_are_dropped_and_valid_kept():
    raw = {
        'fields': [{
            'label': 'Size',
            'type': 'radio',
            'options': [{
                'label': 'Small',
                'value': 's'
            }, {
                'label': '  ',
                'value': 'm'
            }, {
                'label': 'Large'
            }, 'XL', {
                'label': ' Huge ',
                'value': ' xxl '
            }]
        }]
    }
    draft, dropped = decode_form(raw, 'X')

    assert draft.fields[0].options == [FieldOption('Small', 's'), FieldOption('Huge', 'xxl')]
    assert len(dropped) == 3


def test_options_ignored_for_non_choice_fields():
    draft = sanitize_generated_form({'fields': [{'label': 'Agree', 'type': 'checkbox', 'options': [{'label': 'a', 'value': 'a'}]}]},
                                    'X')
    assert draft.fields[0].options is None


def test_blank_or_missing_ids_are_minted_and_duplicates_replaced():
    raw = {'fields': [{'id': 'a', 'label': 'A'}, {'id': '  ', 'label': 'B'}, {'id': 'a', 'label': 'C'}, {'id': 5, 'label': 'D'}]}
    draft = sanitize_generated_form(raw, 'X', id_factory=sequential_ids())

    assert [f.id for f in draft.fields] == ['a', 'gen-1', 'gen-2', 'gen-3']


def test_non_list_fields_treated_as_empty():
    draft = sanitize_generated_form({'title': 'T', 'fields': {'label': 'oops'}}, 'Answer')
    assert [(f.label, f.type) for f in draft.fields] == [('Answer', 'textarea')]


def test_description_and_purpose_kept_when_non_blank():
    draft = sanitize_generated_form({'title': 'T', 'description': ' About ', 'purpose': '', 'fields': [{'label': 'A'}]}, 'X')
    assert draft.description == 'About'
    assert draft.purpose is None


def test_valid_schema_is_unchanged():
    raw = {
        'title': 'Event signup',
        'description': 'Register for the meetup',
        'purpose': 'events',
        'fields': [
            {
                'id': 'name',
                'label': 'Name',
                'type': 'text',
                'required': True,
                'placeholder': 'Jane Doe'
            },
            {
                'id': 'track',
                'label': 'Track',
                'type': 'select',
                'required': False,
                'options': [{
                    'label': 'Backend',
                    'value': 'backend'
                }, {
                    'label': 'Frontend',
                    'value': 'frontend'
                }]
            },
            {
                'id': 'bio',
                'label': 'Bio',
                'type': 'textarea',
                'required': False,
                'description': 'A few words',
                'multiline': True
            },
            {
                'id': 'photo',
                'label': 'Photo',
                'type': 'file',
                'required': False,
                'accept': ['image/*']
            },
        ],
    }
    first = sanitize_generated_form(raw, 'X')
    documented = {
        'title': first.title,
        'description': first.description,
        'purpose': first.purpose,
        'fields': [f.to_document() for f in first.fields]
    }
    second = sanitize_generated_form(documented, 'X')

    assert documented == raw
    assert second == first
    assert first.fields[1] == FormField(id='track',
                                        label='Track',
                                        type='select',
                                        options=[FieldOption('Backend', 'backend'),
                                                 FieldOption('Frontend', 'frontend')])


def test_blank_fallback_label_fails_validation_not_shape():
    with pytest.raises(SchemaValidationError) as excinfo:
        decode_form({}, '')
    assert not isinstance(excinfo.value, SchemaShapeError)
