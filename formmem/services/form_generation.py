"""
Form Generation Service: natural-language request to persisted form schema.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence

from ..models.core import FIELD_TYPES, FormDraft, FormSchema, MemorySnippet
from ..utils.bedrock_embed import BedrockEmbed
from ..utils.bedrock_llm import BedrockLLM
from ..utils.config import config
from ..utils.json_utils import extract_json_payload, repair_json_payload
from ..utils.logging_config import get_logger
from ..utils.schema_sanitizer import SchemaShapeError, SchemaValidationError, sanitize_generated_form
from .form_store import FormStore
from .memory_retrieval import MemoryRetrievalService

logger = get_logger(__name__)

SUMMARY_FIELD_LIMIT = 5


class GenerationParseError(Exception):
    """Raised when generated text cannot be turned into a valid form.

    raw_text holds the offending model output for diagnostics; it must not be
    shown to end users.
    """

    def __init__(self, message: str, raw_text: str = ''):
        super().__init__(message)
        self.raw_text = raw_text


class GenerationStage(str, Enum):
    EMBEDDING = 'embedding'
    RETRIEVING = 'retrieving'
    PROMPTING = 'prompting'
    GENERATING = 'generating'
    PARSING = 'parsing'
    PERSISTING = 'persisting'
    DONE = 'done'
    ABORTED = 'aborted'


@dataclass
class GenerationResult:
    form: FormSchema
    related_memories: List[MemorySnippet]


def build_prompt(prompt: str, memories: Sequence[MemorySnippet], attachments: Optional[Sequence[str]] = None) -> str:
    """Render the generation prompt. Embedding vectors never enter the prompt."""
    memory_text = json.dumps([memory.to_prompt_context() for memory in memories], indent=2)
    attachment_text = f'\nReference media URLs: {", ".join(attachments)}' if attachments else ''
    type_union = ' | '.join(f'"{field_type}"' for field_type in FIELD_TYPES)

    return f"""You are an intelligent form schema generator.

Here is relevant user form history for reference:
{memory_text}

Now generate a new form schema for this request:
"{prompt}"{attachment_text}

Return ONLY valid JSON matching this TypeScript type:
{{
  "title": string;
  "description"?: string;
  "purpose"?: string;
  "fields": Array<{{
    "id": string;
    "label": string;
    "type": {type_union};
    "required"?: boolean;
    "placeholder"?: string;
    "description"?: string;
    "options"?: Array<{{ "label": string; "value": string }}>;
    "accept"?: string[];
    "multiline"?: boolean;
  }}>;
}}

Do not include markdown fences."""


def build_memory_summary(draft: FormDraft) -> str:
    """Retrieval preview: title followed by the first fields as 'label (type)'."""
    highlights = ', '.join(form_field.highlight() for form_field in draft.fields[:SUMMARY_FIELD_LIMIT])
    return f'{draft.title}: {highlights}'


def parse_generated_form(text: str, fallback_label: str) -> FormDraft:
    """Extract, repair, parse and sanitize a generated form.

    Raises:
        GenerationParseError: If no valid form can be obtained
    """
    payload = extract_json_payload(text)
    normalized = repair_json_payload(payload)

    try:
        raw = json.loads(normalized)
        return sanitize_generated_form(raw, fallback_label)
    except (json.JSONDecodeError, SchemaShapeError, SchemaValidationError) as e:
        logger.error(f'Failed to parse form schema: {e}; raw response: {text}')
        raise GenerationParseError(f'Unable to parse generated form schema: {e}', raw_text=text) from e


class FormGenerationService:
    """Embed, retrieve, prompt, generate, parse and persist a form."""

    def __init__(self,
                 embed: Optional[BedrockEmbed] = None,
                 llm: Optional[BedrockLLM] = None,
                 store: Optional[FormStore] = None,
                 retriever: Optional[MemoryRetrievalService] = None,
                 model_ids: Optional[Sequence[str]] = None,
                 fallback_label: Optional[str] = None):
        """Initialize the service; missing collaborators are built from config."""
        self.embed = embed or BedrockEmbed(config.bedrock_embed)
        self.llm = llm or BedrockLLM(config.bedrock_llm)
        self.store = store or FormStore()
        self.retriever = retriever or MemoryRetrievalService(self.store)
        self.model_ids = list(model_ids) if model_ids is not None else list(config.bedrock_llm.model_ids)
        self.fallback_label = fallback_label or config.fallback_field_label

        logger.info('Initialized FormGenerationService')

    async def _run(self, stage: GenerationStage, func, *args: Any):
        logger.debug(f'Form generation stage: {stage.value}')
        return await asyncio.to_thread(func, *args)

    async def generate_form(self, owner_id: str, prompt: str, attachments: Optional[Sequence[str]] = None) -> GenerationResult:
        """Generate and persist a form for an authenticated owner.

        Each external call is a suspend point, so cancelling the awaiting task
        stops the request; nothing is written before the final persist step.
        The blocking Bedrock and OpenSearch calls run in worker threads: a
        cancellation abandons the await, but a call already in flight runs to
        completion in its thread and its result is discarded. A cancellation
        that arrives before the persist step starts leaves nothing stored.

        Args:
            owner_id: Authenticated owner identity, trusted as given
            prompt: Natural-language description of the form
            attachments: Optional reference media URLs

        Returns:
            GenerationResult with the stored form and the memories used

        Raises:
            GenerationUnavailableError: If every configured model is unavailable
            EmptyGenerationError: If the answering model returned no text
            GenerationParseError: If the answer is not a usable form
        """
        stage = GenerationStage.EMBEDDING
        try:
            query_vector = await self._run(stage, self.embed.embed_query, prompt)

            # Retrieval failures abort the request like any other upstream error
            stage = GenerationStage.RETRIEVING
            memories = await self._run(stage, self.retriever.retrieve, owner_id, query_vector)

            stage = GenerationStage.PROMPTING
            prompt_text = build_prompt(prompt, memories, attachments)

            stage = GenerationStage.GENERATING
            text, model_index = await self._run(stage, self.llm.generate_response, prompt_text, self.model_ids)
            if model_index > 0:
                logger.warning(f'Form generated using fallback model {self.model_ids[model_index]}')

            stage = GenerationStage.PARSING
            draft = parse_generated_form(text, self.fallback_label)

            stage = GenerationStage.PERSISTING
            form = FormSchema(id=str(uuid.uuid4()),
                              owner_id=owner_id,
                              title=draft.title,
                              description=draft.description,
                              purpose=draft.purpose,
                              sharing_slug=str(uuid.uuid4()),
                              fields=draft.fields,
                              embedding_vector=list(query_vector),
                              memory_summary=build_memory_summary(draft))
            form = await self._run(stage, self.store.create_form, form)
        except BaseException as e:
            logger.debug(f'Form generation stage: {GenerationStage.ABORTED.value} (during {stage.value}: {type(e).__name__})')
            raise

        logger.debug(f'Form generation stage: {GenerationStage.DONE.value}')
        logger.info(f'Form {form.id} generated for owner {owner_id}')
        return GenerationResult(form=form, related_memories=memories)
