import io
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from formmem.services.form_store import FormStore
from formmem.utils.bedrock_embed import BedrockEmbed
from formmem.utils.bedrock_llm import BedrockLLM
from formmem.utils.config import BedrockEmbedConfig, BedrockLLMConfig, OpenSearchConfig
from formmem.utils.opensearch_client import OpenSearchClient


class FakeDocumentStore:
    """In-memory stand-in for OpenSearchClient with the same method surface."""

    def __init__(self):
        self.indexes: Dict[str, List[Tuple[str, Dict[str, Any]]]] = {'form': [], 'submission': []}
        self.created_indexes: List[str] = []
        self.fail_search = None
        self._next_id = 0

    def create_index_if_not_exists(self, index_type='form'):
        self.created_indexes.append(index_type)
        return 'created'

    def index_document(self, document, index_type='form'):
        self._next_id += 1
        self.indexes[index_type].append((f'hit-{self._next_id}', json.loads(json.dumps(document))))
        return True

    def search_documents(self,
                         filters,
                         index_type='form',
                         includes: Optional[Sequence[str]] = None,
                         excludes: Optional[Sequence[str]] = None,
                         sort: Optional[Sequence[Tuple[str, str]]] = None,
                         size=None):
        if self.fail_search is not None:
            raise self.fail_search
        hits = [(hit_id, doc) for hit_id, doc in self.indexes[index_type] if all(doc.get(k) == v for k, v in filters.items())]
        for field, order in reversed(list(sort or [])):
            hits.sort(key=lambda hit: hit[1].get(field) or '', reverse=order == 'desc')
        results = []
        for hit_id, doc in hits[:size]:
            source = dict(doc)
            if includes:
                source = {k: v for k, v in source.items() if k in includes}
            for key in excludes or []:
                source.pop(key, None)
            results.append({'id': hit_id, 'score': 1.0, 'document': source})
        return results

    def get_document(self, filters, index_type='form', excludes=None):
        results = self.search_documents(filters, index_type=index_type, excludes=excludes, size=1)
        return results[0] if results else None

    def update_document(self, doc_id, changes, index_type='form'):
        for hit_id, doc in self.indexes[index_type]:
            if hit_id == doc_id:
                doc.update(changes)
                return True
        return False

    def delete_document(self, doc_id, index_type='form'):
        before = len(self.indexes[index_type])
        self.indexes[index_type] = [(h, d) for h, d in self.indexes[index_type] if h != doc_id]
        return len(self.indexes[index_type]) < before

    def delete_documents(self, filters, index_type='form'):
        deleted = 0
        for hit in self.search_documents(filters, index_type=index_type):
            if self.delete_document(hit['id'], index_type=index_type):
                deleted += 1
        return deleted


class FakeOpenSearch:
    """Low-level opensearch-py double honoring term filters, sort, size and search_after."""

    def __init__(self):
        self.indices = MagicMock()
        self.indices.exists.return_value = True
        self.indices.create.return_value = {'acknowledged': True}
        self.documents: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.requests: List[Dict[str, Any]] = []
        self._next_id = 0

    def index(self, index, body):
        self._next_id += 1
        self.documents.setdefault(index, {})[f'hit-{self._next_id:06d}'] = json.loads(json.dumps(body))
        return {'result': 'created'}

    def search(self, index, body):
        self.requests.append(body)
        terms = [clause['term'] for clause in body['query'].get('bool', {}).get('filter', [])]
        order = [next(iter(clause.items())) for clause in body['sort']]
        matches = [(doc_id, source) for doc_id, source in self.documents.get(index, {}).items()
                   if all(source.get(k) == v for term in terms for k, v in term.items())]
        for sort_field, spec in reversed(order):
            matches.sort(key=lambda match: match[1][sort_field], reverse=spec['order'] == 'desc')

        if 'search_after' in body:
            matches = [match for match in matches if self._after(match[1], order, body['search_after'])]

        hits = []
        for doc_id, source in matches[:body['size']]:
            projected = dict(source)
            includes = body.get('_source', {}).get('includes')
            if includes:
                projected = {k: v for k, v in projected.items() if k in includes}
            for key in body.get('_source', {}).get('excludes', []):
                projected.pop(key, None)
            hits.append({'_id': doc_id, '_score': None, '_source': projected, 'sort': [source[f] for f, _ in order]})
        return {'hits': {'hits': hits}}

    @staticmethod
    def _after(source, order, search_after):
        for (sort_field, spec), marker in zip(order, search_after):
            if source[sort_field] != marker:
                return source[sort_field] > marker if spec['order'] == 'asc' else source[sort_field] < marker
        return False

    def delete(self, index, id):
        del self.documents[index][id]
        return {'result': 'deleted'}


def client_error(code: str, message: str, operation: str = 'ConverseStream') -> ClientError:
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


class FakeBedrockRuntime:
    """Scripted bedrock-runtime: per-model text or exception, fixed embedding."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, embedding: Optional[List[float]] = None):
        self.responses = responses or {}
        self.embedding = embedding if embedding is not None else [0.1, 0.2, 0.3]
        self.converse_calls: List[Dict[str, Any]] = []
        self.invoke_calls: List[Dict[str, Any]] = []

    def converse_stream(self, modelId, messages, inferenceConfig, **kwargs):
        self.converse_calls.append({'modelId': modelId, 'messages': messages, 'inferenceConfig': inferenceConfig})
        outcome = self.responses.get(modelId, '')
        if isinstance(outcome, Exception):
            raise outcome
        events = [{'contentBlockDelta': {'delta': {'text': chunk}}} for chunk in ([outcome] if outcome else [])]
        events.append({'metadata': {'usage': {'inputTokens': 10, 'outputTokens': 20}, 'metrics': {'latencyMs': 5}}})
        return {'stream': events}

    def invoke_model(self, body, modelId, accept, contentType):
        self.invoke_calls.append({'body': json.loads(body), 'modelId': modelId})
        payload = {'embedding': self.embedding} if 'titan' in modelId else {'embeddings': [self.embedding]}
        return {'body': io.BytesIO(json.dumps(payload).encode())}


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def form_store(document_store):
    return FormStore(opensearch=document_store)


@pytest.fixture
def llm_config():
    return BedrockLLMConfig(region='us-east-1', model_ids=['m1', 'm2'], max_tokens=512, temperature=0.0, retry_attempts=1)


@pytest.fixture
def embed_config():
    return BedrockEmbedConfig(region='us-east-1', model_id='amazon.titan-embed-text-v2:0', dimension=3, retry_attempts=1)


@pytest.fixture
def make_llm(llm_config):

    def factory(responses):
        runtime = FakeBedrockRuntime(responses=responses)
        return BedrockLLM(llm_config, client=runtime), runtime

    return factory


@pytest.fixture
def make_embed(embed_config):

    def factory(embedding=None):
        runtime = FakeBedrockRuntime(embedding=embedding)
        return BedrockEmbed(embed_config, client=runtime), runtime

    return factory


@pytest.fixture
def paged_opensearch():
    """FormStore over the real OpenSearchClient with a small page size."""
    low_level = FakeOpenSearch()
    config = OpenSearchConfig(endpoint='search.example.com', port=443, region='us-east-1', index_name='formmem', dimension=3, page_size=100)
    return FormStore(opensearch=OpenSearchClient(config, client=low_level)), low_level
