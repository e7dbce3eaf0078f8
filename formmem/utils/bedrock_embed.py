"""
Amazon Bedrock embedding client wrapper with error handling.
"""

import json
from typing import Any, List

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockEmbedConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockEmbedError(Exception):
    """Custom exception for Bedrock embedding errors."""
    pass


class BedrockEmbed:
    """Amazon Bedrock embedding client for Titan and Cohere models."""

    def __init__(self, config: BedrockEmbedConfig, client: Any = None):
        """
        Initialize Bedrock embedding client.

        Args:
            config: BedrockEmbedConfig instance with connection parameters
            client: Pre-built bedrock-runtime client (built from config if None)
        """
        self.config = config
        self.model_id = config.model_id
        self.output_embedding_length = config.dimension

        self.bedrock = client or boto3.client(service_name='bedrock-runtime',
                                              region_name=config.region,
                                              config=BotoConfig(retries={
                                                  'max_attempts': config.retry_attempts,
                                                  'mode': 'standard'
                                              }))

        logger.info(f'Initialized Bedrock Embed client with model: {self.model_id}')

    def _invoke(self, data: dict) -> dict:
        """
        Make a Bedrock embedding call.

        Raises:
            BedrockEmbedError: If the call fails
        """
        try:
            response = self.bedrock.invoke_model(body=json.dumps(data),
                                                 modelId=self.model_id,
                                                 accept='application/json',
                                                 contentType='application/json')
            return json.loads(response.get('body').read())

        except (ClientError, BotoCoreError) as e:
            logger.error(f'Bedrock Embed request failed: {e}')
            raise BedrockEmbedError(f'Bedrock Embed failed: {e}')

    def _embed(self, text: str, input_type: str) -> List[float]:
        if not text or not text.strip():
            logger.warning(f'Empty text provided for {input_type} embedding')
            return [0.0] * self.output_embedding_length

        model = self.model_id.lower()
        try:
            if 'titan' in model:
                response = self._invoke({'inputText': text, 'dimensions': self.output_embedding_length})
                return response.get('embedding', [0.0] * self.output_embedding_length)

            elif 'cohere' in model:
                if self.output_embedding_length != 1024:
                    raise BedrockEmbedError(f'Cohere models only support 1024 dimensions, got {self.output_embedding_length}')

                response = self._invoke({'input_type': input_type, 'texts': [text]})
                embeddings = response.get('embeddings')
                return embeddings[0] if embeddings else [0.0] * self.output_embedding_length

            else:
                raise BedrockEmbedError(f'Unsupported embedding model: {self.model_id}')

        except BedrockEmbedError:
            raise
        except Exception as e:
            logger.error(f'Error generating {input_type} embedding: {e}')
            raise BedrockEmbedError(f'Embedding failed: {e}')

    def embed_document(self, text: str) -> List[float]:
        """
        Generate embeddings for stored text.

        Raises:
            BedrockEmbedError: If embedding generation fails
        """
        return self._embed(text, 'search_document')

    def embed_query(self, text: str) -> List[float]:
        """
        Generate embeddings for query text such as a generation prompt.

        Raises:
            BedrockEmbedError: If embedding generation fails
        """
        return self._embed(text, 'search_query')

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock embedding service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            test_embedding = self.embed_document('test')
            return len(test_embedding) == self.output_embedding_length

        except Exception as e:
            logger.error(f'Bedrock Embed health check failed: {e}')
            return False
