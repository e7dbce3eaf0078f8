"""
Configuration management for AWS services and application settings.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_GENERATION_MODELS = ('anthropic.claude-3-5-sonnet-20240620-v1:0,'
                             'anthropic.claude-3-sonnet-20240229-v1:0,'
                             'anthropic.claude-3-haiku-20240307-v1:0')


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock LLM service."""
    region: str
    model_ids: List[str]  # Ordered; later entries are fallbacks
    max_tokens: int
    temperature: float
    retry_attempts: int


@dataclass
class BedrockEmbedConfig:
    """Configuration for Amazon Bedrock Embed service."""
    region: str
    model_id: str
    dimension: int
    retry_attempts: int


@dataclass
class OpenSearchConfig:
    """Configuration for OpenSearch."""
    endpoint: str
    port: int
    region: str
    index_name: str
    dimension: int
    service: str = 'aoss'
    page_size: int = 500  # hits per search_after page
    refresh_before_delete: bool = False


@dataclass
class MemoryConfig:
    """Configuration for form memory retrieval."""
    top_k: int
    list_limit: int


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    bedrock_llm: BedrockLLMConfig
    bedrock_embed: BedrockEmbedConfig
    opensearch: OpenSearchConfig
    memory: MemoryConfig
    mcp: MCPConfig
    fallback_field_label: str = field(default='Response')


def parse_model_ids(raw: str) -> List[str]:
    """Split a comma-separated model list, dropping blanks."""
    return [name.strip() for name in raw.split(',') if name.strip()]


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', 'us-east-1'),
                                          model_ids=parse_model_ids(os.getenv('BEDROCK_LLM_MODEL_IDS', DEFAULT_GENERATION_MODELS)),
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '4096')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.2')),
                                          retry_attempts=int(os.getenv('BEDROCK_LLM_RETRY_ATTEMPTS', '3')))

    # Bedrock Embed configuration
    bedrock_embed_config = BedrockEmbedConfig(region=os.getenv('BEDROCK_EMBED_AWS_REGION', 'us-east-1'),
                                              model_id=os.getenv('BEDROCK_EMBED_MODEL_ID', 'amazon.titan-embed-text-v2:0'),
                                              dimension=int(os.getenv('BEDROCK_EMBED_DIMENSION', '1024')),
                                              retry_attempts=int(os.getenv('BEDROCK_EMBED_RETRY_ATTEMPTS', '3')))

    # Document store configuration
    opensearch_service = os.getenv('OPENSEARCH_SERVICE', 'aoss')
    # Serverless collections have no _refresh API
    refresh_default = 'false' if opensearch_service == 'aoss' else 'true'
    opensearch_config = OpenSearchConfig(endpoint=os.getenv('OPENSEARCH_ENDPOINT', 'localhost'),
                                         port=int(os.getenv('OPENSEARCH_PORT', '443')),
                                         region=os.getenv('OPENSEARCH_AWS_REGION', 'us-east-1'),
                                         index_name=os.getenv('OPENSEARCH_INDEX', 'formmem'),
                                         dimension=int(os.getenv('OPENSEARCH_DIMENSION', os.getenv('BEDROCK_EMBED_DIMENSION', '1024'))),
                                         service=opensearch_service,
                                         page_size=int(os.getenv('OPENSEARCH_PAGE_SIZE', '500')),
                                         refresh_before_delete=os.getenv('OPENSEARCH_REFRESH_BEFORE_DELETE',
                                                                         refresh_default).lower() == 'true')

    # Memory configuration
    memory_config = MemoryConfig(top_k=int(os.getenv('MEMORY_TOP_K', '5')),
                                 list_limit=int(os.getenv('MEMORY_LIST_LIMIT', '10')))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     bedrock_llm=bedrock_llm_config,
                     bedrock_embed=bedrock_embed_config,
                     opensearch=opensearch_config,
                     memory=memory_config,
                     mcp=mcp_config,
                     fallback_field_label=os.getenv('FORM_FALLBACK_FIELD_LABEL', 'Response'))


# Global configuration instance
config = load_config()
