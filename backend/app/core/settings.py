from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional

from app.core.provider import ProviderConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    service_name: str = Field(default="Nova AI Chatbot API", alias="SERVICE_NAME")
    port: int = Field(default=5001, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Comma separated; "*" allows any origin
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Honour X-Forwarded-For when running behind nginx / a load balancer
    trust_proxy: bool = Field(default=False, alias="TRUST_PROXY")

    # Rate limiting on /api/* (defaults: 100 requests per 15 minutes per client)
    rate_limit_window_ms: int = Field(default=15 * 60 * 1000, alias="RATE_LIMIT_WINDOW_MS")
    rate_limit_max_requests: int = Field(default=100, alias="RATE_LIMIT_MAX_REQUESTS")

    max_body_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_BODY_BYTES")

    # OpenAI; without a key the chatbot answers with the maintenance message
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    chat_model: str = Field(default="gpt-3.5-turbo", alias="CHAT_MODEL")
    chat_max_tokens: int = Field(default=500, alias="CHAT_MAX_TOKENS")
    chat_temperature: float = Field(default=0.7, alias="CHAT_TEMPERATURE")
    chat_timeout_seconds: float = Field(default=30.0, alias="CHAT_TIMEOUT_SECONDS")

    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            api_key=self.openai_api_key,
            model_id=self.chat_model,
            max_tokens=self.chat_max_tokens,
            temperature=self.chat_temperature,
            timeout_seconds=self.chat_timeout_seconds,
        )


settings = Settings()
