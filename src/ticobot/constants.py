"""Application-wide constants and defaults for TicoBot.

This module provides a single source of truth for configuration defaults,
model tables, and other constants used throughout the application.
"""

# =============================================================================
# Provider Selection
# =============================================================================
DEFAULT_LLM_PROVIDER = "openai"
DEFAULT_EMBEDDING_PROVIDER = "openai"
DEFAULT_VECTOR_STORE = "ravendb"
DEFAULT_DATABASE_PROVIDER = "ravendb"

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_RAVENDB_URL = "http://localhost:8080"
DEFAULT_RAVENDB_DATABASE = "ticobot"

# =============================================================================
# Model Defaults
# =============================================================================
DEFAULT_OPENAI_LLM_MODEL = "gpt-4-turbo-preview"
DEFAULT_DEEPSEEK_MODEL = "deepseek-chat"
DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_OLLAMA_MODEL = "qwen2.5:14b"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

DEFAULT_OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_DEEPSEEK_EMBEDDING_MODEL = "text-embedding"
DEFAULT_OLLAMA_EMBEDDING_MODEL = "nomic-embed-text"

# =============================================================================
# Context Windows (tokens)
# =============================================================================
DEEPSEEK_CONTEXT_WINDOW = 64000
GEMINI_CONTEXT_WINDOW = 1048576

GROQ_CONTEXT_WINDOWS = {
    "llama-3.3-70b-versatile": 128000,
    "llama-3.1-70b-versatile": 128000,
    "llama-3.1-8b-instant": 128000,
    "llama3-70b-8192": 8192,
    "llama3-8b-8192": 8192,
    "mixtral-8x7b-32768": 32768,
    "gemma2-9b-it": 8192,
}
GROQ_DEFAULT_CONTEXT_WINDOW = 32768

OLLAMA_CONTEXT_WINDOWS = {
    "qwen2.5:7b": 32768,
    "qwen2.5:14b": 32768,
    "qwen2.5:32b": 32768,
    "llama3.1:8b": 128000,
    "llama3.2:3b": 128000,
    "mistral:7b": 32768,
    "deepseek-r1:14b": 64000,
    "gemma2:9b": 8192,
}
OLLAMA_DEFAULT_CONTEXT_WINDOW = 32768

# =============================================================================
# Embedding Settings
# =============================================================================
OPENAI_SMALL_EMBEDDING_DIMENSIONS = 1536
OPENAI_LARGE_EMBEDDING_DIMENSIONS = 3072
DEEPSEEK_EMBEDDING_DIMENSIONS = 1536
OLLAMA_EMBEDDING_DIMENSIONS = 768

OPENAI_MAX_INPUT_TOKENS = 8191
OLLAMA_MAX_INPUT_TOKENS = 8192

# =============================================================================
# Generation Settings
# =============================================================================
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TOP_K = 5
DEFAULT_MIN_RELEVANCE_SCORE = 0.1
DEFAULT_MAX_CONTEXT_LENGTH = 4000

# =============================================================================
# Chat API Limits
# =============================================================================
MAX_QUESTION_LENGTH = 1000
MAX_TOP_K = 15
CHAT_DEFAULT_TOP_K = 10
CHAT_DEFAULT_MAX_TOKENS = 2000
CHAT_MAX_CONTEXT_LENGTH = 16000

CHAT_MIN_MAX_TOKENS = 100
CHAT_MAX_MAX_TOKENS = 4000
MAX_TEMPERATURE = 2.0
CHAT_CACHE_TTL_HOURS = 24 * 7
STREAM_WORDS_PER_CHUNK = 10

# Party comparison
COMPARE_MAX_TOPIC_LENGTH = 500
COMPARE_MAX_PARTIES = 5
COMPARE_DEFAULT_TOP_K = 3
COMPARE_MAX_TOP_K = 10

DEFAULT_QUERY_PROCESSING = "false"

# Documents kept in the LLM context but never shown as sources
EXCLUDED_FROM_SOURCES = ("partidos-candidatos-2026",)

# =============================================================================
# Usage Statistics
# =============================================================================
TOON_STATS_MAX_HISTORY = 1000
COST_PER_1K_TOKENS = 0.0001

# =============================================================================
# Ingestion
# =============================================================================
CHUNK_SIZE_WORDS = 500
CHUNK_OVERLAP_WORDS = 50
EMBEDDING_BATCH_SIZE = 100
DEFAULT_DOCUMENT_SOURCE = "TSE"
CONTENT_PREVIEW_LENGTH = 200

# =============================================================================
# Collections
# =============================================================================
DOCUMENTS_COLLECTION = "Documents"
CHUNKS_COLLECTION = "Chunks"
CHAT_CACHE_COLLECTION = "ChatCache"
CHUNKS_VECTOR_INDEX = "Chunks/ByEmbedding"

# Vector search
DEFAULT_MATCH_THRESHOLD = 0.0


# =============================================================================
# HTTP API
# =============================================================================
DEFAULT_FLASK_HOST = "0.0.0.0"
DEFAULT_FLASK_PORT = 5000
SEARCH_MAX_QUERY_LENGTH = 500
SEARCH_DEFAULT_LIMIT = 5
SEARCH_MAX_LIMIT = 20
SEARCH_DEFAULT_MIN_SCORE = 0.35
DOCUMENTS_DEFAULT_LIMIT = 20
DOCUMENTS_MAX_LIMIT = 100
CHUNKS_DEFAULT_LIMIT = 50
CHUNKS_MAX_LIMIT = 200
