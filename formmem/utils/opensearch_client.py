"""
OpenSearch client wrapper used as the form and submission document store.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import boto3
from opensearchpy import OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import NotFoundError, OpenSearchException
from requests_aws4auth import AWS4Auth

from .config import OpenSearchConfig
from .logging_config import get_logger

logger = get_logger(__name__)

INDEX_TYPES = ('form', 'submission')


class OpenSearchError(Exception):
    """Custom exception for OpenSearch errors."""
    pass


class OpenSearchClient:
    """OpenSearch client with AWS authentication and error handling."""

    def __init__(self, config: OpenSearchConfig, client: Any = None):
        """
        Initialize OpenSearch client.

        Args:
            config: OpenSearchConfig instance with connection parameters
            client: Pre-built opensearchpy client (built from config if None)
        """
        self.config = config

        if client is None:
            credentials = boto3.Session().get_credentials()
            auth = AWS4Auth(region=config.region, service=config.service, refreshable_credentials=credentials)
            endpoint = config.endpoint
            if '://' in endpoint:
                # Remove protocol if present
                endpoint = endpoint.split('://', 1)[1]

            client = OpenSearch(hosts=[{
                'host': endpoint,
                'port': config.port
            }],
                                http_auth=auth,
                                use_ssl=True,
                                verify_certs=True,
                                connection_class=RequestsHttpConnection)
        self.client = client

        logger.info(f'Initialized OpenSearch client for endpoint: {config.endpoint}')

    def index_for(self, index_type: str) -> str:
        if index_type not in INDEX_TYPES:
            raise ValueError(f'Unknown index type: {index_type}')
        return f'{self.config.index_name}_{index_type}'

    def _index_body(self, index_type: str) -> Dict[str, Any]:
        if index_type == 'form':
            properties = {
                'id': {
                    'type': 'keyword'
                },
                'owner_id': {
                    'type': 'keyword'
                },
                'title': {
                    'type': 'text'
                },
                'description': {
                    'type': 'text'
                },
                'purpose': {
                    'type': 'keyword'
                },
                'sharing_slug': {
                    'type': 'keyword'
                },
                'fields': {
                    'type': 'object',
                    'enabled': False
                },
                'embedding_vector': {
                    'type': 'knn_vector',
                    'dimension': self.config.dimension,
                    'method': {
                        'name': 'hnsw',
                        'space_type': 'cosinesimil',
                        'engine': 'nmslib'
                    }
                },
                'memory_summary': {
                    'type': 'text'
                },
                'created_at': {
                    'type': 'date'
                },
                'updated_at': {
                    'type': 'date'
                }
            }
            settings = {'index': {'knn': True}}
        else:  # submission index
            properties = {
                'id': {
                    'type': 'keyword'
                },
                'form_id': {
                    'type': 'keyword'
                },
                'owner_id': {
                    'type': 'keyword'
                },
                'values': {
                    'type': 'object',
                    'enabled': False
                },
                'media': {
                    'type': 'keyword'
                },
                'submitted_at': {
                    'type': 'date'
                }
            }
            settings = {}

        body = {'mappings': {'properties': properties}}
        if settings:
            body['settings'] = settings
        return body

    def create_index_if_not_exists(self, index_type: str = 'form') -> str:
        """
        Create index if it doesn't exist.

        Args:
            index_type: Type of index (form or submission)

        Returns:
            'exists', 'created' or 'failed'
        """
        index_name = self.index_for(index_type)

        try:
            if self.client.indices.exists(index=index_name):
                logger.debug(f'Index {index_name} already exists')
                return 'exists'

            response = self.client.indices.create(index=index_name, body=self._index_body(index_type))
            if response.get('acknowledged', False):
                logger.info(f'Created index {index_name}')
                return 'created'
            return 'failed'

        except OpenSearchException as e:
            logger.error(f'Error creating index {index_name}: {e}')
            raise OpenSearchError(f'Failed to create index: {e}')

    def index_document(self, document: Dict[str, Any], index_type: str = 'form') -> bool:
        """
        Index a document.

        Args:
            document: Document to index
            index_type: Type of index (form or submission)

        Returns:
            True if indexing was successful, False otherwise
        """
        index_name = self.index_for(index_type)

        try:
            response = self.client.index(index=index_name, body=document)

            success = response.get('result') in ['created', 'updated']
            if success:
                logger.debug(f'Indexed document in {index_name}')
            else:
                logger.warning(f'Unexpected result indexing document: {response}')

            return success

        except OpenSearchException as e:
            logger.error(f'Error indexing document: {e}')
            raise OpenSearchError(f'Failed to index document: {e}')

    @staticmethod
    def build_query(filters: Dict[str, Any]) -> Dict[str, Any]:
        """Term filter on every (field, value) pair; match_all when empty."""
        if not filters:
            return {'match_all': {}}
        return {'bool': {'filter': [{'term': {field: value}} for field, value in filters.items()]}}

    def search_documents(self,
                         filters: Dict[str, Any],
                         index_type: str = 'form',
                         includes: Optional[Sequence[str]] = None,
                         excludes: Optional[Sequence[str]] = None,
                         sort: Optional[Sequence[Tuple[str, str]]] = None,
                         size: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Find documents matching exact-value filters.

        Hits are fetched in pages of config.page_size using search_after, so
        every match is returned unless size caps the total.

        Args:
            filters: Field to value mapping, all must match
            index_type: Type of index (form or submission)
            includes: Source fields to return (all if None)
            excludes: Source fields to leave out
            sort: (field, 'asc'|'desc') pairs; 'id' is appended as tiebreaker
            size: Maximum number of documents (all matches if None)

        Returns:
            List of {'id', 'score', 'document'} dicts in result order
        """
        index_name = self.index_for(index_type)

        sort_pairs = list(sort or [])
        if 'id' not in [sort_field for sort_field, _ in sort_pairs]:
            # search_after needs a unique sort key
            sort_pairs.append(('id', 'asc'))

        search_body: Dict[str, Any] = {'query': self.build_query(filters)}
        source: Dict[str, Any] = {}
        if includes:
            source['includes'] = list(includes)
        if excludes:
            source['excludes'] = list(excludes)
        if source:
            search_body['_source'] = source
        search_body['sort'] = [{sort_field: {'order': order}} for sort_field, order in sort_pairs]

        results: List[Dict[str, Any]] = []
        search_after = None
        try:
            while size is None or len(results) < size:
                page_size = self.config.page_size if size is None else min(self.config.page_size, size - len(results))
                body = dict(search_body, size=page_size)
                if search_after is not None:
                    body['search_after'] = search_after

                hits = self.client.search(index=index_name, body=body)['hits']['hits']
                for hit in hits:
                    results.append({'id': hit['_id'], 'score': hit.get('_score'), 'document': hit['_source']})

                if len(hits) < page_size:
                    break
                search_after = hits[-1]['sort']

            logger.debug(f'Search on {index_name} returned {len(results)} documents')
            return results

        except NotFoundError:
            logger.debug(f'Index {index_name} does not exist yet')
            return []
        except OpenSearchException as e:
            logger.error(f'Error searching {index_name}: {e}')
            raise OpenSearchError(f'Search failed: {e}')

    def get_document(self,
                     filters: Dict[str, Any],
                     index_type: str = 'form',
                     excludes: Optional[Sequence[str]] = None) -> Optional[Dict[str, Any]]:
        """
        Get the first document matching the filters.

        Returns:
            {'id', 'score', 'document'} if found, None otherwise
        """
        results = self.search_documents(filters, index_type=index_type, excludes=excludes, size=1)
        return results[0] if results else None

    def update_document(self, doc_id: str, changes: Dict[str, Any], index_type: str = 'form') -> bool:
        """
        Apply a partial update to a document.

        Args:
            doc_id: OpenSearch document ID (the '_id' of a search hit)
            changes: Fields to overwrite

        Returns:
            True if the document was updated or already matched, False if not found
        """
        index_name = self.index_for(index_type)

        try:
            response = self.client.update(index=index_name, id=doc_id, body={'doc': changes})
            return response.get('result') in ['updated', 'noop']

        except NotFoundError:
            logger.warning(f'Document {doc_id} not found for update')
            return False
        except OpenSearchException as e:
            logger.error(f'Error updating document {doc_id}: {e}')
            raise OpenSearchError(f'Failed to update document: {e}')

    def delete_document(self, doc_id: str, index_type: str = 'form') -> bool:
        """
        Delete a document from the index.

        Args:
            doc_id: OpenSearch document ID to delete

        Returns:
            True if deletion was successful, False otherwise
        """
        index_name = self.index_for(index_type)

        try:
            response = self.client.delete(index=index_name, id=doc_id)

            success = response.get('result') == 'deleted'
            if success:
                logger.debug(f'Deleted document {doc_id} from {index_name}')
            else:
                logger.warning(f'Document {doc_id} not found for deletion')

            return success

        except NotFoundError:
            logger.warning(f'Document {doc_id} not found for deletion')
            return False
        except OpenSearchException as e:
            logger.error(f'Error deleting document {doc_id}: {e}')
            raise OpenSearchError(f'Failed to delete document: {e}')

    def delete_documents(self, filters: Dict[str, Any], index_type: str = 'form') -> int:
        """
        Delete every document matching the filters.

        The index is refreshed first when config.refresh_before_delete is set,
        so documents written since the last refresh are included. All matching
        ids are collected across pages before anything is deleted.

        Returns:
            Number of documents deleted
        """
        if not filters:
            raise ValueError('Refusing to delete documents without filters')

        index_name = self.index_for(index_type)
        if self.config.refresh_before_delete:
            try:
                self.client.indices.refresh(index=index_name)
            except NotFoundError:
                return 0
            except OpenSearchException as e:
                logger.error(f'Error refreshing {index_name}: {e}')
                raise OpenSearchError(f'Failed to refresh index: {e}')

        hits = self.search_documents(filters, index_type=index_type, includes=['id'])
        deleted = 0
        for hit in hits:
            if self.delete_document(hit['id'], index_type=index_type):
                deleted += 1

        logger.debug(f'Deleted {deleted} of {len(hits)} matching documents from {index_name}')
        return deleted

    def health_check(self) -> bool:
        """
        Perform a health check on the OpenSearch service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response = self.client.indices.exists(index=self.index_for('form'))

            return response in [True, False]

        except Exception as e:
            logger.error(f'OpenSearch health check failed: {e}')
            return False
