from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Optional: model override for question generation and analysis
	gemini_model_listen: str | None = Field(default=None, validation_alias="GEMINI_MODEL_LISTEN")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	llm_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="meta-llama/llama-3.3-70b-instruct", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Listening Practice", validation_alias="OPENROUTER_TITLE")

	# Playback estimation
	words_per_second: float = Field(default=2.5, validation_alias="LISTEN_WORDS_PER_SECOND")
	speech_rate: float = Field(default=1.0, validation_alias="LISTEN_SPEECH_RATE")
	sampler_interval_seconds: float = Field(default=0.2, validation_alias="LISTEN_SAMPLER_INTERVAL")
	voice_hint: str = Field(default="en-US", validation_alias="LISTEN_VOICE_HINT")
	default_level: str = Field(default="B1", validation_alias="LISTEN_DEFAULT_LEVEL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def clean_key(value: str | None) -> str:
	# Keys pasted into .env files often keep their quotes
	return (value or "").strip().strip("\"'")


def llm_configured(cfg: "Settings | None" = None) -> bool:
	cfg = cfg or settings
	return bool(clean_key(cfg.gemini_api_key) or clean_key(cfg.openrouter_api_key))


settings = Settings()
