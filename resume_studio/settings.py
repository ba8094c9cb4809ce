from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    data_root: Path = Field(default=Path(__file__).resolve().parents[1] / "data")
    database_url: Optional[str] = Field(default=None)  # defaults to sqlite under data_root

    # Compilation
    compiler_mode: Literal["remote", "tectonic", "mock"] = Field(default="remote")
    pdflatex_base_url: str = Field(default="http://localhost:8080")
    compile_timeout_seconds: float = Field(default=60.0, gt=0)
    compile_max_attempts: int = Field(default=2, ge=1, le=5)

    # Debounce windows (milliseconds)
    compile_debounce_ms: int = Field(default=1000, ge=0)
    persist_debounce_ms: int = Field(default=2000, ge=0)

    # LLM
    llm_mode: Literal["mock", "groq", "openai"] = Field(default="openai")
    groq_model: str = Field(default="llama-3.3-70b-versatile")
    openai_model: str = Field(default="gemini-2.5-flash-preview-05-20")
    openai_base_url: Optional[str] = Field(default="http://localhost:4000")
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    admin_api_key: Optional[str] = Field(default=None)

    # API Keys
    groq_api_key: Optional[str] = Field(default=None)
    openai_api_key: Optional[str] = Field(default=None)

    # Ensure we load the project's root .env file even when the process
    # cwd is 'resume_studio/' (run_dev.py sets cwd to the package dir).
    root_env: ClassVar[str] = str(Path(__file__).resolve().parents[1] / ".env")

    model_config = {
        "env_file": root_env,
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def compile_debounce_seconds(self) -> float:
        return self.compile_debounce_ms / 1000.0

    @property
    def persist_debounce_seconds(self) -> float:
        return self.persist_debounce_ms / 1000.0

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_root / 'resume_studio.db'}"


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.data_root.mkdir(parents=True, exist_ok=True)
    return settings
