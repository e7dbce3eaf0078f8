"""
MCP Interface Layer using fastmcp for form generation and collection.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from pydantic import ValidationError

from .models.core import SubmissionValue
from .models.validation import GenerateFormRequest, SubmitFormRequest, UpdateFormRequest
from .services.form_generation import FormGenerationService
from .services.form_store import FormNotFoundError, FormStore
from .services.memory_retrieval import MemoryRetrievalService
from .utils.config import config
from .utils.health_check import get_system_info
from .utils.logging_config import get_logger

logger = get_logger(__name__)

GENERATION_FAILED = 'Unable to generate form'

# Initialize FastMCP application
mcp = FastMCP('Form Memory')


@lru_cache()
def get_form_store() -> FormStore:
    return FormStore()


@lru_cache()
def get_memory_service() -> MemoryRetrievalService:
    return MemoryRetrievalService(get_form_store())


@lru_cache()
def get_generation_service() -> FormGenerationService:
    return FormGenerationService(store=get_form_store(), retriever=get_memory_service())


def _require_user(user_id: str) -> str:
    if not user_id or not user_id.strip():
        raise ValueError('User ID is required')
    return user_id


def _validation_message(error: ValidationError) -> str:
    return ', '.join(issue['msg'] for issue in error.errors())


def _public_form(form) -> Dict[str, Any]:
    return form.to_document(include_embedding=False)


async def generate_form(user_id: str, prompt: str, attachments: Optional[List[str]] = None) -> Dict[str, Any]:
    """Generate a form from a natural-language description.

    Args:
        user_id: Authenticated owner ID
        prompt: What the form should collect (at least 5 characters)
        attachments: Optional reference media URLs

    Returns:
        {'form': ..., 'relatedMemories': [...]}
    """
    _require_user(user_id)
    try:
        request = GenerateFormRequest(prompt=prompt, attachments=attachments)
    except ValidationError as e:
        raise ValueError(_validation_message(e))

    try:
        result = await get_generation_service().generate_form(user_id, request.prompt, request.attachment_urls())
    except Exception as e:
        logger.error(f'Failed to generate form for user {user_id}: {type(e).__name__}: {e}')
        raise Exception(GENERATION_FAILED) from None

    return {
        'form': _public_form(result.form),
        'relatedMemories': [memory.to_dict() for memory in result.related_memories]
    }


def list_forms(user_id: str) -> List[Dict[str, Any]]:
    """List the user's forms, newest first."""
    _require_user(user_id)
    return [_public_form(form) for form in get_form_store().list_forms(user_id)]


def get_form(user_id: str, form_id: str) -> Dict[str, Any]:
    """Get one of the user's forms."""
    _require_user(user_id)
    try:
        return _public_form(get_form_store().get_form(user_id, form_id))
    except FormNotFoundError:
        raise ValueError('Form not found')


def update_form(user_id: str,
                form_id: str,
                title: Optional[str] = None,
                description: Optional[str] = None,
                purpose: Optional[str] = None) -> Dict[str, Any]:
    """Update a form's title, description or purpose."""
    _require_user(user_id)
    try:
        changes = UpdateFormRequest(title=title, description=description, purpose=purpose).changes()
    except ValidationError as e:
        raise ValueError(_validation_message(e))

    try:
        if not changes:
            return _public_form(get_form_store().get_form(user_id, form_id))
        return _public_form(get_form_store().update_form(user_id, form_id, changes))
    except FormNotFoundError:
        raise ValueError('Form not found')


def delete_form(user_id: str, form_id: str) -> Dict[str, Any]:
    """Delete a form together with its submissions."""
    _require_user(user_id)
    try:
        removed = get_form_store().delete_form(user_id, form_id)
    except FormNotFoundError:
        raise ValueError('Form not found')
    return {'success': True, 'deletedSubmissions': removed}


def list_form_submissions(user_id: str, form_id: str) -> List[Dict[str, Any]]:
    """List submissions of one of the user's forms, newest first."""
    _require_user(user_id)
    store = get_form_store()
    try:
        form = store.get_form(user_id, form_id)
    except FormNotFoundError:
        raise ValueError('Form not found')
    return [submission.to_document() for submission in store.list_submissions(form.id)]


def get_public_form(slug: str) -> Dict[str, Any]:
    """Get a shared form by its sharing slug (no authentication)."""
    try:
        return _public_form(get_form_store().get_form_by_slug(slug))
    except FormNotFoundError:
        raise ValueError('Form not found')


def submit_public_form(slug: str, values: List[Dict[str, Any]], media: Optional[List[str]] = None) -> Dict[str, Any]:
    """Record a submission against a shared form (no authentication).

    Args:
        slug: Sharing slug of the form
        values: List of {'fieldId': str, 'value': str | [str] | number | bool | null}
        media: Optional uploaded media URLs
    """
    store = get_form_store()
    try:
        form = store.get_form_by_slug(slug)
    except FormNotFoundError:
        raise ValueError('Form not found')

    try:
        request = SubmitFormRequest(values=values, media=media)
    except ValidationError as e:
        raise ValueError(_validation_message(e))

    submission = store.record_submission(form,
                                         [SubmissionValue.from_raw(item.fieldId, item.value) for item in request.values],
                                         request.media_urls())
    return submission.to_document()


def list_memories(user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Browse the prior forms that serve as generation memory."""
    _require_user(user_id)
    return [memory.to_dict() for memory in get_memory_service().list_memories(user_id, limit)]


def system_health() -> Dict[str, Any]:
    """Service configuration and health of Bedrock and OpenSearch dependencies."""
    return get_system_info()


for _tool in (generate_form, list_forms, get_form, update_form, delete_form, list_form_submissions, get_public_form,
              submit_public_form, list_memories, system_health):
    mcp.tool()(_tool)


def main() -> None:
    transport = config.mcp.transport
    if transport == 'stdio':
        mcp.run(transport=transport)
    else:
        mcp.run(transport=transport, host=config.mcp.host, port=config.mcp.port)


if __name__ == '__main__':
    main()
