from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, computed_field

load_dotenv()


class Settings(BaseSettings):
    """Base settings for the application."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "GenAI Studio"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Generative AI exercises: document chat, media generation and workflows"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOGS_DIR: str = "logs"

    DATABASE_URL: str = ""
    LOCAL_SQLITE_PATH: str = "sqlite+aiosqlite:///./local.db"

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """Resolve the database URL for the application.

        Priority:
        1. Explicit DATABASE_URL (Postgres, SQLite, etc.)
        2. Local SQLite fallback for development: LOCAL_SQLITE_PATH
        """
        if self.DATABASE_URL and self.DATABASE_URL.strip():
            return self.DATABASE_URL.strip()
        if self.LOCAL_SQLITE_PATH and self.LOCAL_SQLITE_PATH.strip():
            return self.LOCAL_SQLITE_PATH.strip()
        return "sqlite+aiosqlite:///./local.db"

    # OpenAI settings
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_CHAT_TEMPERATURE: float = 0.1
    OPENAI_CONTENT_MODEL: str = "gpt-4o"
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENAI_EMBEDDING_DIMENSION: int = 1536
    OPENAI_IMAGE_MODEL: str = "dall-e-3"
    OPENAI_TTS_MODEL: str = "tts-1"
    OPENAI_TTS_VOICE: str = "alloy"

    # Pinecone / vector store settings
    PINECONE_API_KEY: str = ""
    PINECONE_INDEX_NAME: str = "rag-documents"
    PINECONE_CLOUD: str = "aws"
    PINECONE_REGION: str = "us-east-1"

    # Cohere reranking
    COHERE_API_KEY: str = ""
    RERANK_ENABLED: bool = True
    RERANK_MODEL: str = "rerank-v3.5"
    RERANK_URL: str = "https://api.cohere.com/v2/rerank"
    RERANK_MAX_TOKENS_PER_DOC: int = 4096
    RERANK_INITIAL_RESULTS: int = Field(default=20, description="Similarity matches fetched before reranking")
    RERANK_FINAL_RESULTS: int = Field(default=10, description="Reranked matches kept in the prompt context")
    RERANK_TIMEOUT_SECONDS: float = 30.0

    # Chunking
    CHUNK_SIZE: int = 2000
    CHUNK_OVERLAP: int = 400

    # Uploads
    MAX_UPLOAD_SIZE_BYTES: int = 100 * 1024 * 1024

    # Retry policy
    RETRY_DEFAULT_DELAY_SECONDS: float = 10.0
    IMAGE_MAX_ATTEMPTS: int = 6
    STUDIO_MAX_ATTEMPTS: int = 3
    STUDIO_RETRY_DELAY_SECONDS: float = 2.0

    # Batch throttling (cooperative, between sequential requests)
    BATCH_REQUEST_DELAY_SECONDS: float = 10.0

    # Web search (news workflow)
    SERPER_API_KEY: str = ""
    SERPER_URL: str = "https://google.serper.dev/search"

    # Inngest durable workflows
    INNGEST_APP_ID: str = "genai-studio"
    INNGEST_DEV: bool = Field(default=True, description="Talk to the local Inngest dev server")
    NEWS_MAX_ITERATIONS: int = 20

    # Generated media output
    GENERATED_IMAGES_DIR: str = "generated_images"
    SPEECH_ASSETS_DIR: str = "assets"
    CONTENT_SUITE_DIR: str = "content_suite"


settings = Settings()
