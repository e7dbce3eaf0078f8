"""
Pydantic contracts for generated forms and incoming request payloads.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import (AfterValidator, AnyHttpUrl, BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter,
                      ValidationError, field_validator, model_validator)

from .core import CHOICE_FIELD_TYPES, FIELD_TYPES

FieldTypeLiteral = Literal[FIELD_TYPES]

_HTTP_URL = TypeAdapter(AnyHttpUrl)


def _http_url(value: str) -> str:
    # validated as a URL but kept exactly as sent
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        raise ValueError(f'Invalid URL: {value}') from None
    return value


HttpUrlText = Annotated[str, AfterValidator(_http_url)]


class FieldOptionContract(BaseModel):
    label: str = Field(min_length=1)
    value: str = Field(min_length=1)


class FormFieldContract(BaseModel):
    id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: FieldTypeLiteral
    required: bool = False
    placeholder: Optional[str] = None
    description: Optional[str] = None
    options: Optional[List[FieldOptionContract]] = None
    accept: Optional[List[str]] = None
    multiline: Optional[bool] = None

    @model_validator(mode='after')
    def choice_fields_have_options(self) -> 'FormFieldContract':
        if self.type in CHOICE_FIELD_TYPES and not self.options:
            raise ValueError(f'{self.type} field {self.id} has no options')
        return self


class FormContract(BaseModel):
    """Full contract a generated form must satisfy before it is persisted."""
    title: str = Field(min_length=1)
    description: Optional[str] = None
    purpose: Optional[str] = None
    fields: List[FormFieldContract] = Field(min_length=1)


class GenerateFormRequest(BaseModel):
    """Payload of the generation operation."""
    prompt: str = Field(min_length=5)
    attachments: Optional[List[HttpUrlText]] = None

    @field_validator('prompt')
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if len(value.strip()) < 5:
            raise ValueError('Prompt must be at least 5 characters')
        return value

    def attachment_urls(self) -> List[str]:
        return list(self.attachments or [])


class UpdateFormRequest(BaseModel):
    """Owner edits; fields and embedding are not editable."""
    title: Optional[str] = None
    description: Optional[str] = None
    purpose: Optional[str] = None

    @field_validator('title')
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError('Title cannot be blank')
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class SubmissionValueContract(BaseModel):
    fieldId: str = Field(min_length=1)
    value: Union[StrictBool, StrictInt, StrictFloat, StrictStr, List[StrictStr], None] = None


class SubmitFormRequest(BaseModel):
    """Payload of a public submission."""
    values: List[SubmissionValueContract] = Field(min_length=1)
    media: Optional[List[HttpUrlText]] = None

    def media_urls(self) -> List[str]:
        return list(self.media or [])
