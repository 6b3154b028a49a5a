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

"""Game client interface used by the connection manager and the tools.

The protocol work itself (packets, world state, pathing) belongs to an
external library. This module only fixes the surface the rest of the bot
relies on, plus the event plumbing shared by every implementation.
"""

import dataclasses
import enum
from typing import (Any, Callable, Dict, List, Optional, Protocol, Sequence,
                    Tuple, runtime_checkable)

from absl import logging

EventHandler = Callable[..., None]


class GameEvent(enum.Enum):
  """Lifecycle events emitted by a game client."""

  LOGIN = "login"
  SPAWN = "spawn"
  CHAT = "chat"
  KICKED = "kicked"
  ERROR = "error"
  END = "end"


class GameClientError(Exception):
  """Error reported by the game client, with an optional errno-style code."""

  def __init__(self, message: str, code: Optional[str] = None):
    super().__init__(message)
    self.code = code


class RealmSelectionError(GameClientError):
  """No realm on the account matched the requested name."""

  def __init__(self, requested: str, available: Sequence[str] = ()):
    super().__init__(f'Realm "{requested}" not found')
    self.requested = requested
    self.available = list(available)


@dataclasses.dataclass(frozen=True)
class InventoryItem:
  """An inventory stack as seen by the bot.

  Attributes:
    name: Item name without namespace, e.g. "fishing_rod".
    count: Stack size.
    enchanted: Whether the item carries enchantments.
    handle: Implementation object passed back to the client on equip.
  """
  name: str
  count: int = 1
  enchanted: bool = False
  handle: Any = dataclasses.field(default=None, compare=False, repr=False)


@dataclasses.dataclass(frozen=True)
class Realm:
  """A realm listed on the logged-in account."""
  name: str
  handle: Any = dataclasses.field(default=None, compare=False, repr=False)


RealmPicker = Callable[[Sequence[Realm]], Realm]


@dataclasses.dataclass(frozen=True)
class ClientOptions:
  """Options used to create one game client handle."""
  host: str
  port: int
  username: str
  auth: str
  version: Optional[str] = None
  realm_picker: Optional[RealmPicker] = None


def select_realm(realms: Sequence[Realm], wanted: str) -> Realm:
  """Returns the first realm whose name contains `wanted`, ignoring case.

  Args:
    realms: Realms listed on the account, in account order.
    wanted: Requested realm name or a fragment of it.

  Raises:
    RealmSelectionError: If no realm matches.
  """
  needle = wanted.lower()
  for realm in realms:
    if needle in realm.name.lower():
      return realm
  raise RealmSelectionError(wanted, [r.name for r in realms])


@runtime_checkable
class GameClient(Protocol):
  """A live connection to a Minecraft server.

  Events are delivered on the asyncio loop thread. In-world actions that
  wait on the server are coroutines.
  """

  @property
  def username(self) -> str:
    ...

  @property
  def version(self) -> Optional[str]:
    ...

  def on(self, event: GameEvent, handler: EventHandler) -> None:
    ...

  def once(self, event: GameEvent, handler: EventHandler) -> None:
    ...

  def remove_all_listeners(self) -> None:
    ...

  def quit(self, reason: Optional[str] = None) -> None:
    ...

  def chat(self, message: str) -> None:
    ...

  def setup_movements(self) -> None:
    """Configures pathing for the protocol version the server advertised."""
    ...

  def inventory_items(self) -> List[InventoryItem]:
    ...

  async def equip(self, item: InventoryItem, destination: str) -> None:
    ...

  async def fish(self) -> None:
    """Casts and waits until something is caught."""
    ...

  def cancel_fish(self) -> None:
    """Reels in early, making a pending `fish()` fail."""
    ...


ClientFactory = Callable[[ClientOptions], GameClient]


class ClientEventEmitter:
  """Listener registry for the fixed set of `GameEvent`s.

  Handlers registered with `once` are dropped before they run. An exception
  in one handler is logged and does not keep the others from running.
  """

  def __init__(self) -> None:
    self._listeners: Dict[GameEvent, List[Tuple[EventHandler, bool]]] = {
        event: [] for event in GameEvent
    }

  def on(self, event: GameEvent, handler: EventHandler) -> None:
    self._listeners[GameEvent(event)].append((handler, False))

  def once(self, event: GameEvent, handler: EventHandler) -> None:
    self._listeners[GameEvent(event)].append((handler, True))

  def remove_all_listeners(self) -> None:
    for handlers in self._listeners.values():
      handlers.clear()

  def listener_count(self, event: GameEvent) -> int:
    return len(self._listeners[GameEvent(event)])

  def emit(self, event: GameEvent, *args: Any) -> None:
    event = GameEvent(event)
    handlers = list(self._listeners[event])
    self._listeners[event] = [h for h in handlers if not h[1]]
    for handler, _ in handlers:
      try:
        handler(*args)
      except Exception:  # pylint: disable=broad-exception-caught
        logging.exception("Error in %s handler", event.value)
