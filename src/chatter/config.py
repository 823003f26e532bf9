"""Configuration management for the chatter memory engine."""

from pathlib import Path
from dataclasses import dataclass, field
import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()


@dataclass
class MemoryConfig:
    """Memory creation, linking and eviction thresholds."""
    importance_threshold: float = 0.3
    max_memories_per_agent: int = 1000
    similarity_threshold: float = 0.7
    max_content_length: int = 200
    conversation_limit: int = 10  # Memories rendered into the prompt
    relevant_limit: int = 5  # Global memories mixed into contextual recall


@dataclass
class ContextConfig:
    """Token budgeting for conversation history."""
    response_reserve_tokens: int = 1000
    max_context_ratio: float = 0.7
    # Chinese is ~1.5 tokens/char, English ~0.25; this sits in between
    tokens_per_char: float = 0.8
    min_truncation_tokens: int = 100


@dataclass
class PathConfig:
    """Path configuration."""
    base: Path = field(default_factory=lambda: Path.home() / ".chatter")

    @property
    def data(self) -> Path:
        return self.base / "data"

    @property
    def database(self) -> Path:
        return self.data / "memory" / "memories.db"

    @property
    def conversations(self) -> Path:
        return self.data / "conversations"


@dataclass
class Config:
    """Main configuration class."""
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    paths: PathConfig = field(default_factory=PathConfig)
    default_model: str = "GEMINI_PRO"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        paths = PathConfig()
        if os.getenv("CHATTER_HOME"):
            paths = PathConfig(base=Path(os.environ["CHATTER_HOME"]))

        return cls(
            memory=MemoryConfig(
                importance_threshold=float(os.getenv("CHATTER_IMPORTANCE_THRESHOLD", "0.3")),
                max_memories_per_agent=int(os.getenv("CHATTER_MAX_MEMORIES", "1000")),
                similarity_threshold=float(os.getenv("CHATTER_SIMILARITY_THRESHOLD", "0.7")),
                max_content_length=int(os.getenv("CHATTER_MAX_CONTENT_LENGTH", "200")),
                conversation_limit=int(os.getenv("CHATTER_CONVERSATION_LIMIT", "10")),
                relevant_limit=int(os.getenv("CHATTER_RELEVANT_LIMIT", "5")),
            ),
            context=ContextConfig(
                response_reserve_tokens=int(os.getenv("CHATTER_RESPONSE_RESERVE_TOKENS", "1000")),
                max_context_ratio=float(os.getenv("CHATTER_MAX_CONTEXT_RATIO", "0.7")),
                tokens_per_char=float(os.getenv("CHATTER_TOKENS_PER_CHAR", "0.8")),
                min_truncation_tokens=int(os.getenv("CHATTER_MIN_TRUNCATION_TOKENS", "100")),
            ),
            paths=paths,
            default_model=os.getenv("CHATTER_DEFAULT_MODEL", "GEMINI_PRO"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
