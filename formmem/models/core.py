"""
Core data models for form generation, storage and submissions.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

FIELD_TYPES = ('text', 'textarea', 'email', 'number', 'date', 'datetime', 'select', 'checkbox', 'radio', 'file', 'url',
               'phone')

CHOICE_FIELD_TYPES = ('select', 'radio')


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class FieldOption:
    """One selectable choice of a select/radio field."""
    label: str
    value: str  # Wire-level identifier used in submissions


@dataclass
class FormField:
    """One input definition within a form schema."""
    id: str  # Unique within its form only
    label: str
    type: str  # One of FIELD_TYPES
    required: bool = False
    placeholder: Optional[str] = None
    description: Optional[str] = None
    options: Optional[List[FieldOption]] = None  # select/radio only
    accept: Optional[List[str]] = None  # file only
    multiline: Optional[bool] = None  # textarea only

    def highlight(self) -> str:
        return f'{self.label} ({self.type})'

    def to_document(self) -> Dict[str, Any]:
        return _drop_none(asdict(self))

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'FormField':
        options = doc.get('options')
        return cls(id=doc['id'],
                   label=doc['label'],
                   type=doc['type'],
                   required=bool(doc.get('required', False)),
                   placeholder=doc.get('placeholder'),
                   description=doc.get('description'),
                   options=[FieldOption(label=o['label'], value=o['value']) for o in options] if options else None,
                   accept=doc.get('accept'),
                   multiline=doc.get('multiline'))


@dataclass
class FormDraft:
    """A validated, not yet persisted form produced by the schema sanitizer."""
    title: str
    fields: List[FormField]
    description: Optional[str] = None
    purpose: Optional[str] = None


@dataclass
class FormSchema:
    """A generated form owned by one user.

    Fields and embedding are fixed at creation; only title, description and
    purpose change afterwards.
    """
    id: str
    owner_id: str
    title: str
    sharing_slug: str
    fields: List[FormField]
    description: Optional[str] = None
    purpose: Optional[str] = None
    embedding_vector: Optional[List[float]] = None  # From the generation prompt only
    memory_summary: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def highlights(self, limit: int = 5) -> List[str]:
        return [form_field.highlight() for form_field in self.fields[:limit]]

    def to_document(self, include_embedding: bool = True) -> Dict[str, Any]:
        doc = {
            'id': self.id,
            'owner_id': self.owner_id,
            'title': self.title,
            'description': self.description,
            'purpose': self.purpose,
            'sharing_slug': self.sharing_slug,
            'fields': [form_field.to_document() for form_field in self.fields],
            'embedding_vector': self.embedding_vector if include_embedding else None,
            'memory_summary': self.memory_summary,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
        return _drop_none(doc)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'FormSchema':
        return cls(id=doc['id'],
                   owner_id=doc.get('owner_id', ''),
                   title=doc.get('title', ''),
                   sharing_slug=doc.get('sharing_slug', ''),
                   fields=[FormField.from_document(f) for f in doc.get('fields') or []],
                   description=doc.get('description'),
                   purpose=doc.get('purpose'),
                   embedding_vector=doc.get('embedding_vector'),
                   memory_summary=doc.get('memory_summary'),
                   created_at=doc.get('created_at'),
                   updated_at=doc.get('updated_at'))


class ValueKind(str, Enum):
    """Closed set of shapes a submitted field value may take."""
    STRING = 'string'
    STRING_LIST = 'string_list'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    NULL = 'null'


RawValue = Union[str, List[str], int, float, bool, None]


@dataclass(frozen=True)
class SubmissionValue:
    """A (field id, value) pair tagged with the value's kind."""
    field_id: str
    kind: ValueKind
    value: Any

    @classmethod
    def from_raw(cls, field_id: str, raw: RawValue) -> 'SubmissionValue':
        """Classify a raw JSON value.

        Raises:
            ValueError: If the value is none of the supported kinds
        """
        # bool first: it is a subclass of int
        if raw is None:
            return cls(field_id, ValueKind.NULL, None)
        if isinstance(raw, bool):
            return cls(field_id, ValueKind.BOOLEAN, raw)
        if isinstance(raw, (int, float)):
            return cls(field_id, ValueKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(field_id, ValueKind.STRING, raw)
        if isinstance(raw, (list, tuple)) and all(isinstance(item, str) for item in raw):
            return cls(field_id, ValueKind.STRING_LIST, list(raw))
        raise ValueError(f'Unsupported value for field {field_id}: {type(raw).__name__}')

    def to_raw(self) -> RawValue:
        if self.kind is ValueKind.STRING_LIST:
            return list(self.value)
        return self.value

    def to_document(self) -> Dict[str, Any]:
        return {'field_id': self.field_id, 'kind': self.kind.value, 'value': self.to_raw()}

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'SubmissionValue':
        kind = doc.get('kind')
        if kind is None:
            return cls.from_raw(doc['field_id'], doc.get('value'))
        return cls(doc['field_id'], ValueKind(kind), doc.get('value'))


@dataclass
class Submission:
    """One respondent's answers to a form. Immutable once recorded."""
    id: str
    form_id: str
    owner_id: str
    values: List[SubmissionValue]
    media: List[str] = field(default_factory=list)
    submitted_at: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return _drop_none({
            'id': self.id,
            'form_id': self.form_id,
            'owner_id': self.owner_id,
            'values': [value.to_document() for value in self.values],
            'media': list(self.media),
            'submitted_at': self.submitted_at,
        })

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'Submission':
        return cls(id=doc['id'],
                   form_id=doc.get('form_id', ''),
                   owner_id=doc.get('owner_id', ''),
                   values=[SubmissionValue.from_document(v) for v in doc.get('values') or []],
                   media=list(doc.get('media') or []),
                   submitted_at=doc.get('submitted_at'))


@dataclass
class MemorySnippet:
    """Transient preview of a prior form used as generation context. Never stored."""
    form_id: str
    title: str
    summary: str
    highlights: List[str]  # Up to 5 "label (type)" strings
    score: float
    purpose: Optional[str] = None

    def to_prompt_context(self) -> Dict[str, Any]:
        return {'purpose': self.purpose or '', 'title': self.title, 'highlights': self.highlights, 'summary': self.summary}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'formId': self.form_id,
            'purpose': self.purpose,
            'title': self.title,
            'summary': self.summary,
            'highlights': list(self.highlights),
            'score': self.score,
        }
