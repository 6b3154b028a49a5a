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

"""Connection lifecycle for the danniCRAFT game client.

`BotConnection` owns the single live client handle. It turns client
lifecycle events into connection state, replaces the handle on reconnect,
and offers `check_connection_and_reconnect` so that tools can make sure a
connected handle exists before acting.

Everything here runs on one asyncio loop: client events are delivered on the
loop thread and reconnects are scheduled with `loop.call_later`.
"""

import asyncio
import dataclasses
import enum
import functools
import json
import time
from typing import Any, Callable, Dict, Optional, Sequence

from absl import logging

from dannicraft import config as config_lib
from dannicraft import game_client

LogCallback = Callable[[str, str], None]
ChatCallback = Callable[[str, str], None]

# Error codes after which the client will not recover by itself.
FATAL_ERROR_CODES = frozenset({"ECONNREFUSED", "ETIMEDOUT"})

GREETING = (
    "I sense something intriguing about this world... "
    f"{config_lib.BOT_NAME}, ready to assist."
)
RECONNECT_QUIT_REASON = "Reconnecting..."
SIGN_OFF_REASON = f"{config_lib.BOT_NAME} signing off..."


class ConnectionState(enum.Enum):
  """Connection state enumeration."""

  DISCONNECTED = "disconnected"
  CONNECTING = "connecting"
  CONNECTED = "connected"


@dataclasses.dataclass(frozen=True)
class ConnectionCheck:
  """Outcome of `BotConnection.check_connection_and_reconnect`."""
  connected: bool
  message: Optional[str] = None


def absl_log_callback(level: str, message: str) -> None:
  """Default log sink writing to absl logging."""
  if level == "error":
    logging.error("%s", message)
  elif level == "warn":
    logging.warning("%s", message)
  else:
    logging.info("%s", message)


@dataclasses.dataclass
class ConnectionCallbacks:
  """Observers for connection activity.

  Attributes:
    on_log: Called with ("info" | "warn" | "error", message) for every
      transition and externally visible event.
    on_chat_message: Called with (username, message) for chat lines not
      written by the bot itself.
  """
  on_log: LogCallback = absl_log_callback
  on_chat_message: ChatCallback = lambda username, message: None


def format_error(error: Any) -> str:
  """Renders an error or kick reason as a single readable string."""
  if isinstance(error, BaseException):
    return str(error)
  if isinstance(error, str):
    return error
  try:
    return json.dumps(error)
  except (TypeError, ValueError):
    return str(error)


def connection_help_message() -> str:
  """Multi-line advice shown when no connection could be established."""
  return (
      "Cannot connect to Minecraft server.\n\n"
      "Please ensure:\n"
      "1. Minecraft server/Realm is accessible\n"
      "2. Server version is compatible (tested with: "
      f"{config_lib.SUPPORTED_MINECRAFT_VERSION})\n"
      '3. For Realms: Use --auth microsoft --realm "RealmName"\n'
      "4. Complete browser login if prompted\n\n"
      f"For setup instructions, visit: {config_lib.PROJECT_URL}"
  )


def _default_client_factory(
    options: game_client.ClientOptions,
) -> game_client.GameClient:
  # Lazy import: the bridge starts a Node.js process on import.
  from dannicraft import mineflayer_client

  return mineflayer_client.MineflayerClient(options)


class BotConnection:
  """Keeps one game client connected and replaces it when it drops."""

  # Lifecycle event -> (handler method, registered with `once`).
  EVENT_TRANSITIONS: Dict[game_client.GameEvent, tuple] = {
      game_client.GameEvent.SPAWN: ("_on_spawn", True),
      game_client.GameEvent.CHAT: ("_on_chat", False),
      game_client.GameEvent.KICKED: ("_on_kicked", False),
      game_client.GameEvent.ERROR: ("_on_error", False),
      game_client.GameEvent.LOGIN: ("_on_login", False),
      game_client.GameEvent.END: ("_on_end", False),
  }

  def __init__(
      self,
      config: config_lib.ConnectionConfig,
      callbacks: Optional[ConnectionCallbacks] = None,
      reconnect: Optional[config_lib.ReconnectConfig] = None,
      client_factory: Optional[game_client.ClientFactory] = None,
  ):
    """Initializes the connection without connecting.

    Args:
      config: Server, account and realm to connect to.
      callbacks: Log and chat observers. Defaults log to absl.
      reconnect: Reconnect timing. Defaults to `ReconnectConfig()`.
      client_factory: Creates a client handle from options. Defaults to the
        mineflayer-backed client.
    """
    self._config = config
    self._callbacks = callbacks or ConnectionCallbacks()
    self._reconnect = reconnect or config_lib.ReconnectConfig()
    self._client_factory = client_factory or _default_client_factory

    self._client: Optional[game_client.GameClient] = None
    self._state = ConnectionState.DISCONNECTED
    self._is_reconnecting = False
    self._reconnect_timer: Optional[asyncio.TimerHandle] = None

  def get_client(self) -> Optional[game_client.GameClient]:
    return self._client

  def get_state(self) -> ConnectionState:
    return self._state

  def get_config(self) -> config_lib.ConnectionConfig:
    return self._config

  def is_connected(self) -> bool:
    return self._state == ConnectionState.CONNECTED

  @property
  def reconnect_config(self) -> config_lib.ReconnectConfig:
    return self._reconnect

  def _log(self, level: str, message: str) -> None:
    self._callbacks.on_log(level, message)

  # ------------------------------------------------------------------
  # Connecting
  # ------------------------------------------------------------------

  def connect(self) -> None:
    """Creates a new client handle and starts logging in.

    Returns once the handle exists and its event handlers are registered;
    the `spawn` event later moves the state to CONNECTED. Configuration
    errors are logged and leave the state DISCONNECTED with no handle.
    """
    self._is_reconnecting = False
    config = self._config

    realm_picker = None
    if config.realm:
      auth_error = config.realm_auth_error()
      if auth_error:
        self._log("error", auth_error)
        self._state = ConnectionState.DISCONNECTED
        return

      self._log("info", f'Looking for Realm matching "{config.realm}"...')
      realm_picker = self._pick_realm
      self._log(
          "info",
          "Microsoft auth enabled for Realm connection. "
          "Browser login may be required on first run.",
      )
    else:
      self._log(
          "info",
          f"Connecting to {config.host}:{config.port} "
          f"with {config.auth} auth...",
      )
      if config.auth == "microsoft":
        self._log(
            "info",
            "Microsoft auth enabled. You may need to complete login "
            "in your browser on first run.",
        )

    options = game_client.ClientOptions(
        host=config.host,
        port=config.port,
        username=config.username,
        auth=config.auth,
        version=config.version,
        realm_picker=realm_picker,
    )

    self._detach_current_client()
    try:
      client = self._client_factory(options)
    except Exception as e:  # pylint: disable=broad-exception-caught
      self._log("error", f"Failed to create bot: {format_error(e)}")
      self._state = ConnectionState.DISCONNECTED
      return

    self._client = client
    self._state = ConnectionState.CONNECTING
    self._register_event_handlers(client)

  def _pick_realm(
      self, realms: Sequence[game_client.Realm]
  ) -> game_client.Realm:
    """Chooses the configured realm from the account's realm list."""
    self._log("info", f"Found {len(realms)} Realm(s) on your account:")
    for i, realm in enumerate(realms):
      self._log("info", f"  {i + 1}. {realm.name}")

    try:
      matched = game_client.select_realm(realms, self._config.realm)
    except game_client.RealmSelectionError:
      self._log("error", f'No Realm found matching "{self._config.realm}"')
      self._log(
          "info", "Available Realms: " + ", ".join(r.name for r in realms)
      )
      raise

    self._log("info", f"Connecting to Realm: {matched.name}")
    return matched

  def _detach_current_client(self) -> None:
    if self._client is None:
      return
    try:
      self._client.remove_all_listeners()
    except Exception as e:  # pylint: disable=broad-exception-caught
      self._log("warn", f"Error detaching old bot: {format_error(e)}")

  def _register_event_handlers(self, client: game_client.GameClient) -> None:
    for event, (method_name, once) in self.EVENT_TRANSITIONS.items():
      handler = functools.partial(getattr(self, method_name), client)
      if once:
        client.once(event, handler)
      else:
        client.on(event, handler)

  # ------------------------------------------------------------------
  # Event transitions
  # ------------------------------------------------------------------

  def _on_spawn(self, client: game_client.GameClient, *_: Any) -> None:
    self._state = ConnectionState.CONNECTED
    self._log("info", "Bot spawned in world")

    try:
      client.setup_movements()
    except Exception as e:  # pylint: disable=broad-exception-caught
      self._log("warn", f"Could not configure movements: {format_error(e)}")

    client.chat(GREETING)
    self._log(
        "info",
        f"{config_lib.BOT_NAME} connected successfully. "
        f"Username: {client.username}, Server: {self._config.server_label}",
    )

  def _on_chat(
      self, client: game_client.GameClient, username: str, message: str,
      *_: Any,
  ) -> None:
    if username == client.username:
      return
    self._callbacks.on_chat_message(username, message)

  def _on_kicked(
      self, client: game_client.GameClient, reason: Any = None, *_: Any
  ) -> None:
    self._log("error", f"Bot was kicked from server: {format_error(reason)}")
    self._state = ConnectionState.DISCONNECTED
    client.quit()

  def _on_error(
      self, client: game_client.GameClient, error: Any = None, *_: Any
  ) -> None:
    del client  # Unused.
    code = getattr(error, "code", None) or "Unknown error"
    self._log("error", f"Bot error [{code}]: {format_error(error)}")

    if code in FATAL_ERROR_CODES:
      self._state = ConnectionState.DISCONNECTED

  def _on_login(self, client: game_client.GameClient, *_: Any) -> None:
    del client  # Unused.
    self._log("info", "Bot logged in successfully")

  def _on_end(
      self, client: game_client.GameClient, reason: Any = None, *_: Any
  ) -> None:
    self._log("info", f"Bot disconnected: {format_error(reason)}")

    # A handle superseded by a reconnect may end late; leave the current one.
    # This also skips the connected -> disconnected step, which would
    # otherwise mark a healthy replacement as down.
    if self._client is not None and self._client is not client:
      self._log("info", "Ignoring end event from a replaced bot instance")
      return

    if self._state == ConnectionState.CONNECTED:
      self._state = ConnectionState.DISCONNECTED

    if self._client is client:
      try:
        client.remove_all_listeners()
        self._client = None
        self._log("info", "Bot instance cleaned up after disconnect")
      except Exception as e:  # pylint: disable=broad-exception-caught
        self._log(
            "warn",
            f"Error cleaning up bot on end event: {format_error(e)}",
        )

  # ------------------------------------------------------------------
  # Reconnecting
  # ------------------------------------------------------------------

  def attempt_reconnect(self) -> None:
    """Schedules a reconnect after the configured delay.

    Does nothing while a reconnect is pending or a connection is being
    established, so repeated triggers result in one reconnect. Must be
    called from the event loop.
    """
    if self._is_reconnecting or self._state == ConnectionState.CONNECTING:
      return

    self._is_reconnecting = True
    self._state = ConnectionState.CONNECTING
    delay = self._reconnect.delay
    self._log(
        "info",
        "Attempting to reconnect to Minecraft server in "
        f"{int(delay * 1000)}ms...",
    )

    self._cancel_reconnect_timer()
    loop = asyncio.get_running_loop()
    self._reconnect_timer = loop.call_later(delay, self._run_reconnect)

  def _run_reconnect(self) -> None:
    self._reconnect_timer = None
    if self._client is not None:
      try:
        self._client.remove_all_listeners()
        self._client.quit(RECONNECT_QUIT_REASON)
        self._log("info", "Old bot instance cleaned up")
      except Exception as e:  # pylint: disable=broad-exception-caught
        self._log(
            "warn", f"Error while cleaning up old bot: {format_error(e)}"
        )

    self._log("info", "Creating new bot instance...")
    self.connect()

  def _cancel_reconnect_timer(self) -> None:
    if self._reconnect_timer is None:
      return
    try:
      self._reconnect_timer.cancel()
    except Exception as e:  # pylint: disable=broad-exception-caught
      self._log("warn", f"Error clearing reconnect timer: {format_error(e)}")
    self._reconnect_timer = None

  async def check_connection_and_reconnect(self) -> ConnectionCheck:
    """Makes sure a connected handle exists, reconnecting if needed.

    When disconnected, triggers a reconnect and waits up to the reconnect
    delay plus a fixed margin for the bot to spawn. When a connection is
    already being established, fails at once so the caller can retry later.

    Returns:
      ConnectionCheck with `connected` set, or a message explaining what to
      check when no connection is available.
    """
    state = self._state

    if state == ConnectionState.DISCONNECTED:
      self.attempt_reconnect()

      deadline = time.monotonic() + self._reconnect.max_wait
      while time.monotonic() < deadline:
        if self._state == ConnectionState.CONNECTED:
          return ConnectionCheck(connected=True)
        await asyncio.sleep(self._reconnect.poll_interval)

      if self._state == ConnectionState.CONNECTED:
        return ConnectionCheck(connected=True)
      return ConnectionCheck(
          connected=False, message=connection_help_message()
      )

    if state == ConnectionState.CONNECTING:
      return ConnectionCheck(
          connected=False,
          message=(
              f"{config_lib.BOT_NAME} is connecting to the Minecraft "
              "server. Please wait a moment and try again."
          ),
      )

    return ConnectionCheck(connected=True)

  def cleanup(self) -> None:
    """Cancels pending reconnects and quits the client. Never raises."""
    self._cancel_reconnect_timer()
    if self._client is not None:
      try:
        self._client.quit(SIGN_OFF_REASON)
      except Exception as e:  # pylint: disable=broad-exception-caught
        self._log("warn", f"Error during cleanup: {format_error(e)}")
