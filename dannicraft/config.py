# Copyright 2026 The dannicraft Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration for the danniCRAFT bot.

The connection target is a validated, immutable pydantic model. Timing knobs
for reconnects and the fishing loop are plain dataclasses that can be
overridden from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

BOT_NAME = "danniCRAFT"
SUPPORTED_MINECRAFT_VERSION = "1.21.4"
PROJECT_URL = "https://github.com/domocarroll/danniCRAFT"

AuthMode = Literal["microsoft", "offline"]


class ConnectionConfig(BaseModel):
  """Where and how the bot logs in.

  A realm may only be combined with Microsoft auth. That rule is enforced
  when connecting (see `realm_auth_error`) rather than here, so the invalid
  combination can still be represented and reported at connect time.
  """

  model_config = ConfigDict(frozen=True)

  host: str = Field("localhost", description="Server host, ignored for realms")
  port: int = Field(25565, ge=1, le=65535, description="Server port")
  username: str = Field(BOT_NAME, min_length=1, description="Bot username")
  auth: AuthMode = Field("offline", description="Authentication mode")
  version: Optional[str] = Field(
      None, description="Minecraft version, auto-detected when unset"
  )
  realm: Optional[str] = Field(
      None, description="Realm name, partial case-insensitive match"
  )

  @field_validator("version", "realm")
  @classmethod
  def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
      return None
    return value

  def realm_auth_error(self) -> Optional[str]:
    """Returns a message if a realm is requested without Microsoft auth."""
    if self.realm and self.auth != "microsoft":
      return "Realm connection requires --auth microsoft"
    return None

  @property
  def server_label(self) -> str:
    """Realm name when connecting to a realm, host otherwise."""
    return self.realm or self.host


@dataclass(frozen=True)
class ReconnectConfig:
  """Timing of the reconnect protocol, in seconds."""
  delay: float = 2.0  # Wait before a scheduled reconnect runs
  wait_margin: float = 5.0  # Extra time callers wait beyond `delay`
  poll_interval: float = 0.1  # State polling while waiting

  @property
  def max_wait(self) -> float:
    return self.delay + self.wait_margin

  @classmethod
  def from_env(cls) -> 'ReconnectConfig':
    """Create configuration from environment variables."""
    return cls(
        delay=float(os.getenv('DANNICRAFT_RECONNECT_DELAY', '2.0')),
        wait_margin=float(os.getenv('DANNICRAFT_RECONNECT_WAIT_MARGIN', '5.0')),
        poll_interval=float(
            os.getenv('DANNICRAFT_RECONNECT_POLL_INTERVAL', '0.1')
        ),
    )


@dataclass(frozen=True)
class FishingConfig:
  """Pacing and failure policy of the fishing loop.

  Failed casts are retried with exponential backoff starting at
  `retry_base_delay` and capped at `retry_max_delay`. After
  `max_consecutive_failures` failures in a row the session is stopped.
  """
  cast_delay: float = 0.5  # Pause between successful casts
  retry_base_delay: float = 1.0
  retry_max_delay: float = 30.0
  max_consecutive_failures: int = 5
  recent_catch_count: int = 5  # Catches listed by fish-status
  fish_timeout: float = 300.0  # Longest a single cast may block

  @classmethod
  def from_env(cls) -> 'FishingConfig':
    """Create configuration from environment variables."""
    return cls(
        cast_delay=float(os.getenv('DANNICRAFT_FISHING_CAST_DELAY', '0.5')),
        retry_base_delay=float(
            os.getenv('DANNICRAFT_FISHING_RETRY_BASE_DELAY', '1.0')
        ),
        retry_max_delay=float(
            os.getenv('DANNICRAFT_FISHING_RETRY_MAX_DELAY', '30.0')
        ),
        max_consecutive_failures=int(
            os.getenv('DANNICRAFT_FISHING_MAX_FAILURES', '5')
        ),
        fish_timeout=float(os.getenv('DANNICRAFT_FISHING_TIMEOUT', '300.0')),
    )

  def validate(self) -> None:
    """Validate configuration values are sensible.

    Raises:
        ValueError: If configuration contains invalid values.
    """
    if self.cast_delay < 0:
      raise ValueError("cast_delay cannot be negative")
    if self.retry_base_delay < 0:
      raise ValueError("retry_base_delay cannot be negative")
    if self.retry_max_delay < self.retry_base_delay:
      raise ValueError("retry_max_delay must be >= retry_base_delay")
    if self.max_consecutive_failures < 1:
      raise ValueError("max_consecutive_failures must be at least 1")
    if self.recent_catch_count < 0:
      raise ValueError("recent_catch_count cannot be negative")
    if self.fish_timeout <= 0:
      raise ValueError("fish_timeout must be positive")
