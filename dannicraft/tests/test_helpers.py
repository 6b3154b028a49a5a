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

"""Fake game client and helpers for danniCRAFT tests."""

import asyncio
import time
from typing import Any, Callable, List, Optional

from dannicraft import game_client


class Hold:
  """A cast outcome that blocks until released, then catches `item`."""

  def __init__(self, item: Optional[str] = None):
    self.item = item
    self.error: Optional[Exception] = None
    self.released = asyncio.Event()

  def release(self) -> None:
    self.released.set()

  def fail(self, error: Exception) -> None:
    self.error = error
    self.released.set()


class FakeGameClient(game_client.ClientEventEmitter):
  """In-memory game client that records what the bot did.

  Casting consumes `fish_outcomes` in order. An outcome is an item name
  (added to the end of the inventory), an exception (raised), or a `Hold`.
  Once the outcomes run out, casts block until cancelled. As with
  mineflayer, cancelling only affects a cast that is in flight.
  """

  def __init__(
      self,
      options: Optional[game_client.ClientOptions] = None,
      username: str = "danniCRAFT",
      version: str = "1.21.4",
      items: Optional[List[game_client.InventoryItem]] = None,
      fish_outcomes: Optional[List[Any]] = None,
  ):
    super().__init__()
    self.options = options
    self._username = username
    self._version = version
    self.items: List[game_client.InventoryItem] = list(items or [])
    self.fish_outcomes: List[Any] = list(fish_outcomes or [])

    self.chat_messages: List[str] = []
    self.quit_reasons: List[Optional[str]] = []
    self.equipped: List[tuple] = []
    self.movements_configured = 0
    self.fish_calls = 0
    self.cancel_calls = 0
    self.detach_calls = 0

    self.detach_error: Optional[Exception] = None
    self.quit_error: Optional[Exception] = None
    self.equip_error: Optional[Exception] = None
    self._hold: Optional[Hold] = None

  @property
  def username(self) -> str:
    return self._username

  @property
  def version(self) -> Optional[str]:
    return self._version

  def remove_all_listeners(self) -> None:
    self.detach_calls += 1
    if self.detach_error is not None:
      raise self.detach_error
    super().remove_all_listeners()

  def quit(self, reason: Optional[str] = None) -> None:
    if self.quit_error is not None:
      raise self.quit_error
    self.quit_reasons.append(reason)

  def chat(self, message: str) -> None:
    self.chat_messages.append(message)

  def setup_movements(self) -> None:
    self.movements_configured += 1

  def inventory_items(self) -> List[game_client.InventoryItem]:
    return list(self.items)

  async def equip(
      self, item: game_client.InventoryItem, destination: str
  ) -> None:
    await asyncio.sleep(0)
    if self.equip_error is not None:
      raise self.equip_error
    self.equipped.append((item.name, destination))

  async def fish(self) -> None:
    self.fish_calls += 1
    outcome = self.fish_outcomes.pop(0) if self.fish_outcomes else Hold()

    if isinstance(outcome, Hold):
      self._hold = outcome
      try:
        await outcome.released.wait()
      finally:
        if self._hold is outcome:
          self._hold = None
      if outcome.error is not None:
        raise outcome.error
      outcome = outcome.item
    else:
      await asyncio.sleep(0)

    if isinstance(outcome, BaseException):
      raise outcome
    if outcome is not None:
      self.items.append(game_client.InventoryItem(name=outcome))

  def cancel_fish(self) -> None:
    self.cancel_calls += 1
    if self._hold is not None:
      self._hold.fail(game_client.GameClientError("Fishing cancelled"))

  def disconnect(self, reason: str = "socketClosed") -> None:
    """Drops the connection: the pending cast fails, then `end` fires."""
    if self._hold is not None:
      self._hold.fail(game_client.GameClientError("Connection closed"))
    self.emit(game_client.GameEvent.END, reason)


class FakeClientFactory:
  """Client factory recording every client it creates.

  With `auto_spawn`, each new client emits `spawn` on the next loop
  iteration, as a server that accepts the login would.
  """

  def __init__(self, auto_spawn: bool = False, **client_kwargs: Any):
    self.auto_spawn = auto_spawn
    self.client_kwargs = client_kwargs
    self.created: List[FakeGameClient] = []
    self.error: Optional[Exception] = None

  def __call__(self, options: game_client.ClientOptions) -> FakeGameClient:
    if self.error is not None:
      raise self.error
    client = FakeGameClient(options, **self.client_kwargs)
    self.created.append(client)
    if self.auto_spawn:
      asyncio.get_running_loop().call_soon(
          client.emit, game_client.GameEvent.SPAWN
      )
    return client

  @property
  def last(self) -> FakeGameClient:
    return self.created[-1]


class LogRecorder:
  """Log callback keeping (level, message) pairs."""

  def __init__(self):
    self.records: List[tuple] = []

  def __call__(self, level: str, message: str) -> None:
    self.records.append((level, message))

  def messages(self, level: Optional[str] = None) -> List[str]:
    return [m for lvl, m in self.records if level is None or lvl == level]


class FakeClock:
  """Manually advanced wall clock."""

  def __init__(self, now: float = 1_000_000.0):
    self.now = now

  def __call__(self) -> float:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now += seconds


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0
) -> None:
  """Yields to the loop until `predicate` holds.

  Raises:
    AssertionError: If it does not hold within `timeout` seconds.
  """
  deadline = time.monotonic() + timeout
  while not predicate():
    if time.monotonic() > deadline:
      raise AssertionError("Condition not met within %.1fs" % timeout)
    await asyncio.sleep(0.001)
