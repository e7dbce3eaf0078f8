"""
Persistence of form schemas and submissions on top of the document store.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..models.core import FormSchema, Submission, SubmissionValue
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient, OpenSearchError
from ..utils.timestamp_utils import to_iso

logger = get_logger(__name__)

EDITABLE_FORM_ATTRIBUTES = ('title', 'description', 'purpose')
MEMORY_PROJECTION = ('id', 'owner_id', 'title', 'purpose', 'fields', 'memory_summary', 'embedding_vector', 'created_at')


class FormNotFoundError(Exception):
    """Raised when a form does not exist or belongs to someone else."""
    pass


class FormStore:
    """Form and submission collections keyed by id and indexed by owner."""

    def __init__(self, opensearch: Optional[OpenSearchClient] = None):
        """Initialize the store, creating the indexes when missing."""
        self.opensearch = opensearch or OpenSearchClient(config.opensearch)

        try:
            self.opensearch.create_index_if_not_exists(index_type='form')
            self.opensearch.create_index_if_not_exists(index_type='submission')
        except OpenSearchError as e:
            logger.warning(f'Failed to create OpenSearch indexes: {e}')

        logger.info('Initialized FormStore')

    def _find_form_hit(self, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.opensearch.get_document(filters, index_type='form')

    def create_form(self, form: FormSchema) -> FormSchema:
        """Persist a new form, stamping creation times."""
        now = to_iso()
        form.created_at = form.created_at or now
        form.updated_at = form.updated_at or now

        if not self.opensearch.index_document(form.to_document(), index_type='form'):
            raise OpenSearchError(f'Form {form.id} was not indexed')

        logger.debug(f'Stored form {form.id} for owner {form.owner_id}')
        return form

    def list_forms(self, owner_id: str) -> List[FormSchema]:
        """All forms of an owner, newest first, without embeddings."""
        hits = self.opensearch.search_documents({'owner_id': owner_id},
                                                index_type='form',
                                                excludes=['embedding_vector'],
                                                sort=[('created_at', 'desc'), ('id', 'asc')])
        return [FormSchema.from_document(hit['document']) for hit in hits]

    def list_embedded_forms(self, owner_id: str) -> List[FormSchema]:
        """Every memory candidate of an owner in insertion order.

        Forms without an embedding vector are returned too; callers decide
        what to do with them.
        """
        hits = self.opensearch.search_documents({'owner_id': owner_id},
                                                index_type='form',
                                                includes=MEMORY_PROJECTION,
                                                sort=[('created_at', 'asc'), ('id', 'asc')])
        return [FormSchema.from_document(hit['document']) for hit in hits]

    def get_form(self, owner_id: str, form_id: str) -> FormSchema:
        hit = self._find_form_hit({'id': form_id, 'owner_id': owner_id})
        if hit is None:
            raise FormNotFoundError(f'Form {form_id} not found')
        return FormSchema.from_document(hit['document'])

    def get_form_by_slug(self, slug: str) -> FormSchema:
        """Public lookup by sharing slug."""
        hit = self._find_form_hit({'sharing_slug': slug})
        if hit is None:
            raise FormNotFoundError(f'No form shared as {slug}')
        return FormSchema.from_document(hit['document'])

    def update_form(self, owner_id: str, form_id: str, changes: Dict[str, Any]) -> FormSchema:
        """Partial owner update of title, description and purpose.

        Raises:
            ValueError: If changes touch anything else
            FormNotFoundError: If the owner has no such form
        """
        forbidden = set(changes) - set(EDITABLE_FORM_ATTRIBUTES)
        if forbidden:
            raise ValueError(f'Cannot update form attributes: {", ".join(sorted(forbidden))}')

        hit = self._find_form_hit({'id': form_id, 'owner_id': owner_id})
        if hit is None:
            raise FormNotFoundError(f'Form {form_id} not found')

        update = dict(changes)
        update['updated_at'] = to_iso()
        if not self.opensearch.update_document(hit['id'], update, index_type='form'):
            raise FormNotFoundError(f'Form {form_id} not found')

        document = {**hit['document'], **update}
        logger.debug(f'Updated form {form_id}: {", ".join(sorted(changes))}')
        return FormSchema.from_document(document)

    def delete_form(self, owner_id: str, form_id: str) -> int:
        """Delete a form and every submission recorded against it.

        Returns:
            Number of submissions removed with the form
        """
        hit = self._find_form_hit({'id': form_id, 'owner_id': owner_id})
        if hit is None:
            raise FormNotFoundError(f'Form {form_id} not found')

        self.opensearch.delete_document(hit['id'], index_type='form')
        removed = self.opensearch.delete_documents({'form_id': form_id}, index_type='submission')

        logger.info(f'Deleted form {form_id} and {removed} submissions')
        return removed

    def record_submission(self, form: FormSchema, values: List[SubmissionValue], media: Optional[List[str]] = None) -> Submission:
        """Store one respondent's answers.

        Field ids are not checked against the form's fields.
        """
        known_ids = {form_field.id for form_field in form.fields}
        unknown = [value.field_id for value in values if value.field_id not in known_ids]
        if unknown:
            logger.debug(f'Submission for form {form.id} references undeclared fields: {", ".join(unknown)}')

        submission = Submission(id=str(uuid.uuid4()),
                                form_id=form.id,
                                owner_id=form.owner_id,
                                values=list(values),
                                media=list(media or []),
                                submitted_at=to_iso())

        if not self.opensearch.index_document(submission.to_document(), index_type='submission'):
            raise OpenSearchError(f'Submission {submission.id} was not indexed')

        logger.debug(f'Recorded submission {submission.id} for form {form.id}')
        return submission

    def list_submissions(self, form_id: str) -> List[Submission]:
        """Submissions of a form, newest first."""
        hits = self.opensearch.search_documents({'form_id': form_id},
                                                index_type='submission',
                                                sort=[('submitted_at', 'desc'), ('id', 'asc')])
        return [Submission.from_document(hit['document']) for hit in hits]
