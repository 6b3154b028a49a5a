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

"""Game client backed by mineflayer through the JSPyBridge `javascript` package.

mineflayer emits its events on the bridge thread. Every event is converted
to Python values there and then handed to the asyncio loop that created the
client, so listeners only ever run on the loop thread. Blocking bridge calls
that wait on the server (`fish`, `equip`) run in the loop's default executor.
"""

import asyncio
import functools
from typing import Any, Callable, Dict, List, Optional

import javascript

from dannicraft import game_client

# Bridge call timeout, in seconds, for calls that wait on the server.
DEFAULT_ACTION_TIMEOUT = 300
EQUIP_TIMEOUT = 30


def _to_error(error: Any) -> game_client.GameClientError:
  """Copies a JavaScript Error into a GameClientError."""
  if isinstance(error, game_client.GameClientError):
    return error
  message = getattr(error, "message", None) or str(error)
  code = getattr(error, "code", None)
  return game_client.GameClientError(str(message), str(code) if code else None)


def _to_text(value: Any) -> str:
  if value is None or isinstance(value, str):
    return value or ""
  try:
    return str(javascript.globalThis.JSON.stringify(value))
  except Exception:  # pylint: disable=broad-exception-caught
    return str(value)


def _item_from_js(item: Any) -> game_client.InventoryItem:
  enchants = getattr(item, "enchants", None)
  try:
    enchanted = bool(enchants) and int(enchants.length) > 0
  except (AttributeError, TypeError, ValueError):
    enchanted = False
  return game_client.InventoryItem(
      name=str(item.name),
      count=int(item.count),
      enchanted=enchanted,
      handle=item,
  )


class MineflayerClient(game_client.ClientEventEmitter):
  """One mineflayer bot, exposed through the `GameClient` interface."""

  # Converts the raw bridge arguments of each event to Python values.
  _EVENT_ARGS: Dict[game_client.GameEvent, Callable[..., tuple]] = {
      game_client.GameEvent.LOGIN: lambda *args: (),
      game_client.GameEvent.SPAWN: lambda *args: (),
      game_client.GameEvent.CHAT: (
          lambda username, message, *args: (str(username), str(message))
      ),
      game_client.GameEvent.KICKED: lambda reason=None, *args: (
          _to_text(reason),
      ),
      game_client.GameEvent.ERROR: lambda error=None, *args: (
          _to_error(error),
      ),
      game_client.GameEvent.END: lambda reason=None, *args: (
          _to_text(reason),
      ),
  }

  def __init__(
      self,
      options: game_client.ClientOptions,
      loop: Optional[asyncio.AbstractEventLoop] = None,
      action_timeout: float = DEFAULT_ACTION_TIMEOUT,
  ):
    """Creates the mineflayer bot and starts connecting.

    Args:
      options: Connection options.
      loop: Loop that receives events. Defaults to the running loop.
      action_timeout: Bridge timeout, in seconds, for `fish`.
    """
    super().__init__()
    self._loop = loop or asyncio.get_running_loop()
    self._action_timeout = action_timeout
    self._realm_picker = options.realm_picker
    self._fishing = False

    mineflayer = javascript.require("mineflayer")
    self._pathfinder = javascript.require("mineflayer-pathfinder")

    bot_options: Dict[str, Any] = {
        "host": options.host,
        "port": options.port,
        "username": options.username,
        "auth": options.auth,
    }
    if options.version:
      bot_options["version"] = options.version
    if options.realm_picker is not None:
      bot_options["realms"] = {"pickRealm": self._pick_realm}

    self._bot = mineflayer.createBot(bot_options)
    self._bot.loadPlugin(self._pathfinder.pathfinder)

    self._relays: Dict[game_client.GameEvent, Callable[..., None]] = {}
    for event in game_client.GameEvent:
      self._relays[event] = self._bridge_event(event)

  def _bridge_event(self, event: game_client.GameEvent) -> Callable[..., None]:
    convert = self._EVENT_ARGS[event]

    def relay(this, *args):
      del this  # The emitting bot.
      try:
        values = convert(*args)
      except Exception:  # pylint: disable=broad-exception-caught
        values = tuple(args)
      self._loop.call_soon_threadsafe(self.emit, event, *values)

    javascript.On(self._bot, event.value)(relay)
    return relay

  def _pick_realm(self, realms: Any, *_: Any) -> Any:
    listed = [game_client.Realm(name=str(r.name), handle=r) for r in realms]
    return self._realm_picker(listed).handle

  @property
  def username(self) -> str:
    return str(self._bot.username)

  @property
  def version(self) -> Optional[str]:
    version = self._bot.version
    return str(version) if version else None

  def remove_all_listeners(self) -> None:
    super().remove_all_listeners()
    for event, relay in self._relays.items():
      javascript.off(self._bot, event.value, relay)
    self._relays.clear()

  def quit(self, reason: Optional[str] = None) -> None:
    if reason is None:
      self._bot.quit()
    else:
      self._bot.quit(reason)

  def chat(self, message: str) -> None:
    self._bot.chat(message)

  def setup_movements(self) -> None:
    mc_data = javascript.require("minecraft-data")(self._bot.version)
    movements = self._pathfinder.Movements(self._bot, mc_data)
    self._bot.pathfinder.setMovements(movements)

  def inventory_items(self) -> List[game_client.InventoryItem]:
    return [_item_from_js(item) for item in self._bot.inventory.items()]

  async def _call_blocking(self, func: Callable[..., Any], *args: Any,
                           timeout: float) -> Any:
    try:
      return await self._loop.run_in_executor(
          None, functools.partial(func, *args, timeout=timeout)
      )
    except Exception as e:
      raise _to_error(e) from e

  async def equip(
      self, item: game_client.InventoryItem, destination: str
  ) -> None:
    await self._call_blocking(
        self._bot.equip, item.handle, destination, timeout=EQUIP_TIMEOUT
    )

  async def fish(self) -> None:
    self._fishing = True
    try:
      await self._call_blocking(self._bot.fish, timeout=self._action_timeout)
    except asyncio.CancelledError:
      # The caller gave up on this cast; do not leave the bobber out.
      self._bot.activateItem()
      raise
    finally:
      self._fishing = False

  def cancel_fish(self) -> None:
    # Using the rod again reels in; mineflayer then rejects the pending fish().
    # Without a cast in flight the same right-click would cast a new bobber.
    if not self._fishing:
      return
    self._bot.activateItem()
