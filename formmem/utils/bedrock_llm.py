"""
Amazon Bedrock LLM client wrapper with ordered model fallback.
"""

from typing import Any, List, Optional, Sequence, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .config import BedrockLLMConfig
from .logging_config import get_logger

logger = get_logger(__name__)

MODEL_UNAVAILABLE_CODES = ('ResourceNotFoundException', )
MODEL_UNAVAILABLE_MARKERS = ('not found', 'model identifier is invalid', "isn't supported", 'not supported',
                             'unsupported model')


class BedrockLLMError(Exception):
    """Custom exception for Bedrock LLM errors."""
    pass


class GenerationUnavailableError(BedrockLLMError):
    """Raised when every configured model is unavailable."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


class EmptyGenerationError(BedrockLLMError):
    """Raised when a model answered with no text."""
    pass


def is_model_unavailable(error: BaseException) -> bool:
    """Whether a failure means the model does not exist or cannot be invoked."""
    if isinstance(error, ClientError):
        code = error.response.get('Error', {}).get('Code', '')
        if code in MODEL_UNAVAILABLE_CODES:
            return True
    message = str(error).lower()
    return any(marker in message for marker in MODEL_UNAVAILABLE_MARKERS)


class BedrockLLM:
    """Amazon Bedrock LLM client that walks an ordered list of models."""

    def __init__(self, config: BedrockLLMConfig, client: Any = None):
        """
        Initialize Bedrock LLM client.

        Args:
            config: BedrockLLMConfig instance with connection parameters
            client: Pre-built bedrock-runtime client (built from config if None)
        """
        self.config = config
        self.model_ids = list(config.model_ids)

        # Throttling and transient transport errors are retried by botocore itself
        self.bedrock_runtime = client or boto3.client('bedrock-runtime',
                                                      region_name=config.region,
                                                      config=BotoConfig(connect_timeout=60,
                                                                        read_timeout=600,
                                                                        retries={
                                                                            'max_attempts': config.retry_attempts,
                                                                            'mode': 'standard'
                                                                        }))

        logger.info(f'Initialized Bedrock LLM client with models: {", ".join(self.model_ids)}')

    def _converse(self, model_id: str, prompt: str) -> str:
        messages = [{'role': 'user', 'content': [{'text': prompt}]}]
        inf_params = {'maxTokens': self.config.max_tokens, 'temperature': self.config.temperature}

        stream = self.bedrock_runtime.converse_stream(modelId=model_id, messages=messages,
                                                      inferenceConfig=inf_params).get('stream')

        msg = ''
        if stream:
            for event in stream:
                if 'contentBlockDelta' in event:
                    msg += event['contentBlockDelta']['delta'].get('text', '')
                if 'metadata' in event:
                    logger.debug(f'Bedrock LLM usage for {model_id}: {event["metadata"].get("usage")}')
        return msg

    def generate_response(self, prompt: str, model_ids: Optional[Sequence[str]] = None) -> Tuple[str, int]:
        """
        Generate text from the first available model.

        A model that is missing or unsupported is skipped in favour of the next
        one. Any other failure is raised immediately.

        Args:
            prompt: Rendered prompt
            model_ids: Ordered model identifiers (uses config default if None)

        Returns:
            Tuple of (response_text, index of the model that answered)

        Raises:
            ValueError: If the model list is empty
            GenerationUnavailableError: If every model is unavailable
            EmptyGenerationError: If the answering model returned no text
        """
        candidates: List[str] = list(model_ids) if model_ids is not None else self.model_ids
        if not candidates:
            raise ValueError('At least one generation model is required')

        last_error: Optional[BaseException] = None
        for index, model_id in enumerate(candidates):
            try:
                logger.debug(f'Bedrock LLM request with model {model_id} ({index + 1}/{len(candidates)})')
                text = self._converse(model_id, prompt)
            except Exception as e:
                if not is_model_unavailable(e):
                    logger.error(f'Bedrock LLM model {model_id} failed: {e}')
                    raise
                logger.warning(f'Bedrock LLM model {model_id} unavailable, trying fallback: {e}')
                last_error = e
                continue

            if not text or not text.strip():
                raise EmptyGenerationError(f'Empty response from model {model_id}')

            logger.debug(f'Bedrock LLM response generated successfully (length: {len(text)})')
            return text, index

        raise GenerationUnavailableError(f'No generation model available (tried {len(candidates)})',
                                         last_error=last_error) from last_error

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock LLM service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response, _ = self.generate_response("Respond with just 'OK'.")
            return len(response.strip()) > 0

        except Exception as e:
            logger.error(f'Bedrock LLM health check failed: {e}')
            return False
