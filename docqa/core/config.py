from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # LLM / Embeddings (OpenAI)
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    llm_model: str = Field("gpt-4o-mini", alias="LLM_MODEL")
    embedding_model: str = Field("text-embedding-3-small", alias="EMBEDDING_MODEL")

    # Chunk storage (SQLite by default, any SQLAlchemy DSN works)
    database_url: str = Field("sqlite:///docqa.db", alias="DATABASE_URL")

    # Retrieval parameters
    candidate_pool_size: int = Field(20, alias="CANDIDATE_POOL_SIZE")
    final_top_k: int = Field(8, alias="FINAL_TOP_K")
    bm25_scope: Literal["candidates", "corpus"] = Field("candidates", alias="BM25_SCOPE")

    # Fusion / diversity parameters
    rrf_k: int = Field(60, alias="RRF_K")
    mmr_lambda: float = Field(0.7, alias="MMR_LAMBDA")

    # Generation
    context_char_budget: int = Field(2600, alias="CONTEXT_CHAR_BUDGET")
    max_new_tokens: int = Field(256, alias="MAX_NEW_TOKENS")
    temperature: float = Field(0.1, alias="TEMPERATURE")

    # HTTP server
    api_host: str = Field("127.0.0.1", alias="API_HOST")
    api_port: int = Field(8000, alias="API_PORT")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LOG_FILE")


settings = Settings()
