"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class TelegramConfig(BaseModel):
    """Telegram channel configuration."""
    enabled: bool = False
    token: str = ""  # Bot token from @BotFather; the bot must be connected to a Business account
    proxy: str | None = None  # HTTP/SOCKS5 proxy URL, e.g. "socks5://127.0.0.1:1080"


class ChannelsConfig(BaseModel):
    """Configuration for chat channels."""
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)


class AntiDeleteConfig(BaseModel):
    """Deleted-message recovery configuration."""
    enabled: bool = True
    capacity: int = Field(default=500, ge=1)  # Max cached entries, FIFO eviction
    snapshot_path: str = "~/.recallbot/data/antidelete.json"
    owner_chat_id: str = ""  # Conversation that receives recovery reports
    acquisition_timeout_s: float = Field(default=60.0, gt=0)
    max_media_mb: int = Field(default=64, ge=1)


class Config(BaseSettings):
    """Root configuration for recallbot."""
    antidelete: AntiDeleteConfig = Field(default_factory=AntiDeleteConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)

    @property
    def snapshot_file(self) -> Path:
        """Get expanded snapshot path."""
        return Path(self.antidelete.snapshot_path).expanduser()

    class Config:
        env_prefix = "RECALLBOT_"
        env_nested_delimiter = "__"
