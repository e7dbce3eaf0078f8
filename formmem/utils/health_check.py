"""
Health check utilities for the application.
"""

from typing import Any, Dict

from .bedrock_embed import BedrockEmbed
from .bedrock_llm import BedrockLLM
from .config import config
from .logging_config import get_logger
from .opensearch_client import OpenSearchClient

logger = get_logger(__name__)


def _probe(name: str, service: str, detail_key: str, detail: str, factory) -> Dict[str, Any]:
    try:
        healthy = factory().health_check()
        return {'healthy': healthy, 'service': service, detail_key: detail}
    except Exception as e:
        logger.error(f'{name} health probe failed: {e}')
        return {'healthy': False, 'service': service, 'error': str(e)}


def get_health_status() -> Dict[str, Any]:
    """Get detailed health status of all components.

    Returns:
        Dictionary with health status of each component
    """
    return {
        'bedrock_llm':
        _probe('bedrock_llm', 'Amazon Bedrock LLM', 'models', ', '.join(config.bedrock_llm.model_ids),
               lambda: BedrockLLM(config.bedrock_llm)),
        'bedrock_embed':
        _probe('bedrock_embed', 'Amazon Bedrock Embed', 'model', config.bedrock_embed.model_id,
               lambda: BedrockEmbed(config.bedrock_embed)),
        'opensearch':
        _probe('opensearch', 'Amazon OpenSearch', 'endpoint', config.opensearch.endpoint,
               lambda: OpenSearchClient(config.opensearch)),
    }


def get_system_info() -> Dict[str, Any]:
    """Get system information and configuration.

    Returns:
        Dictionary with system information
    """
    health_status = get_health_status()
    healthy = all(status.get('healthy', False) for status in health_status.values())
    if not healthy:
        logger.warning('Some system components are unhealthy')

    return {
        'service_name': 'FormMem',
        'version': '1.0.0',
        'configuration': {
            'generation_models': config.bedrock_llm.model_ids,
            'embedding_model': config.bedrock_embed.model_id,
            'memory_top_k': config.memory.top_k,
            'aws_region': config.bedrock_llm.region
        },
        'healthy': healthy,
        'health_status': health_status
    }
