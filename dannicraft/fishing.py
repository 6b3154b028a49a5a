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

"""Automated fishing sessions.

A session runs a background loop that casts, records what was caught and
optionally comments in chat, until it is stopped. State lives in a
`FishingSession` held by a `FishingSessions` registry, one per bot username,
owned by whoever runs the bot.

Example usage:
    >>> sessions = FishingSessions()
    >>> session = sessions.get(client.username)
    >>> text = await start_fishing(client, session, announce=True)
    >>> ...
    >>> text = stop_fishing(client, session)
"""

import asyncio
import collections
import dataclasses
import enum
import random
import time
import traceback
from typing import Callable, Dict, List, Optional

import tenacity
from absl import logging

from dannicraft import config as config_lib
from dannicraft import game_client

ROD_NAME = "fishing_rod"

# Luck of the Sea targets.
TREASURE_ITEMS = (
    "enchanted_book",
    "name_tag",
    "nautilus_shell",
    "saddle",
    "bow",  # Can be enchanted
    "fishing_rod",  # Can be enchanted
)

JUNK_ITEMS = (
    "leather_boots",
    "leather",
    "bowl",
    "string",
    "potion",  # Water bottle
    "bone",
    "ink_sac",
    "tripwire_hook",
    "rotten_flesh",
    "stick",
    "bamboo",
    "lily_pad",
)

# Failure messages containing these mean the cast was stopped on purpose.
INTERRUPT_MARKERS = ("interrupt", "stop", "cancel")


class CatchKind(enum.Enum):
  TREASURE = "treasure"
  FISH = "fish"
  JUNK = "junk"


CATCH_MESSAGES = {
    CatchKind.TREASURE: (
        "Now this is intriguing...",
        "The waters reveal their secrets.",
        "Patience rewards those who wait.",
        "I sensed this one coming.",
    ),
    CatchKind.FISH: (
        "Another one for the collection.",
        "The rhythm of the cast continues.",
        "Steady progress.",
    ),
    CatchKind.JUNK: (
        "Not everything hidden is valuable... but noted.",
        "Even the mundane has its place.",
    ),
}

START_CHAT = (
    "I sense something intriguing in these waters... "
    "Let's see what they reveal."
)
STOP_CHAT = "The waters have shared their secrets. Session complete."


class FishingInterruptedError(Exception):
  """A cast ended because fishing was stopped on purpose."""


def classify_catch(item_name: str) -> CatchKind:
  """Sorts a caught item into treasure, junk or a plain catch.

  Treasure is matched first, by substring, so "bowl" counts as a "bow".
  """
  if any(treasure in item_name for treasure in TREASURE_ITEMS):
    return CatchKind.TREASURE
  if any(junk in item_name for junk in JUNK_ITEMS):
    return CatchKind.JUNK
  return CatchKind.FISH


def is_treasure(item_name: str) -> bool:
  return classify_catch(item_name) == CatchKind.TREASURE


def is_interruption(error: BaseException) -> bool:
  if isinstance(error, FishingInterruptedError):
    return True
  message = str(error).lower()
  return any(marker in message for marker in INTERRUPT_MARKERS)


def format_duration(seconds: float) -> str:
  """Formats elapsed time as "1h 5m", "3m 20s" or "42s"."""
  seconds = int(seconds)
  minutes = seconds // 60
  hours = minutes // 60
  if hours > 0:
    return f"{hours}h {minutes % 60}m"
  if minutes > 0:
    return f"{minutes}m {seconds % 60}s"
  return f"{seconds}s"


def format_catch_rate(total_catches: int, elapsed_seconds: float) -> str:
  """Catches per minute with one decimal, "0" when no time has passed."""
  if elapsed_seconds <= 0:
    return "0"
  return f"{total_catches / (elapsed_seconds / 60):.1f}"


@dataclasses.dataclass
class CatchRecord:
  item: str
  timestamp: float
  is_treasure: bool
  count: int = 1


@dataclasses.dataclass
class FishingSession:
  """Bookkeeping of one bot's fishing.

  Attributes:
    is_active: Whether the loop should keep casting.
    start_time: When the current session started, None before the first.
    catches: Every catch of the current session, oldest first.
    treasures: Names of treasure catches, oldest first.
    stop_reason: Why the loop stopped itself, if it did.
    task: The running loop.
    generation: Incremented on every start, so a loop outliving its session
      can tell it has been replaced.
  """
  is_active: bool = False
  start_time: Optional[float] = None
  catches: List[CatchRecord] = dataclasses.field(default_factory=list)
  treasures: List[str] = dataclasses.field(default_factory=list)
  stop_reason: Optional[str] = None
  task: Optional[asyncio.Task] = dataclasses.field(default=None, repr=False)
  generation: int = 0

  def reset(self, now: float) -> None:
    self.generation += 1
    self.is_active = True
    self.start_time = now
    self.catches = []
    self.treasures = []
    self.stop_reason = None

  def elapsed(self, now: float) -> float:
    return now - self.start_time if self.start_time is not None else 0.0


class FishingSessions:
  """Fishing sessions keyed by bot username, created on first access."""

  def __init__(self) -> None:
    self._sessions: Dict[str, FishingSession] = {}

  def get(self, bot_username: str) -> FishingSession:
    if bot_username not in self._sessions:
      self._sessions[bot_username] = FishingSession()
    return self._sessions[bot_username]

  def __len__(self) -> int:
    return len(self._sessions)


def _log_retry_warning(retry_state: tenacity.RetryCallState) -> None:
  assert retry_state.outcome is not None
  exception = retry_state.outcome.exception()
  logging.warning(
      "Cast failed (attempt %d), retrying in %.1fs: %s",
      retry_state.attempt_number,
      retry_state.next_action.sleep if retry_state.next_action else 0.0,
      "".join(traceback.format_exception_only(type(exception), exception))
      .strip(),
  )


def _find_rod(
    client: game_client.GameClient,
) -> Optional[game_client.InventoryItem]:
  for item in client.inventory_items():
    if ROD_NAME in item.name:
      return item
  return None


ClientProvider = Callable[[], Optional[game_client.GameClient]]


class _FishingLoop:
  """The background loop of one session.

  The client is looked up through `client_provider` before every cast, so
  a reconnect during the session is picked up and the replaced handle is
  never used again. No client counts as a failed cast.
  """

  def __init__(
      self,
      client_provider: ClientProvider,
      session: FishingSession,
      announce: bool,
      config: config_lib.FishingConfig,
      clock: Callable[[], float],
      rng: random.Random,
  ):
    self._client_provider = client_provider
    self._session = session
    self._announce = announce
    self._config = config
    self._clock = clock
    self._rng = rng
    self._generation = session.generation

  def _active(self) -> bool:
    return (self._session.is_active and
            self._session.generation == self._generation)

  def _current_client(self) -> game_client.GameClient:
    client = self._client_provider()
    if client is None:
      raise game_client.GameClientError("Bot is not connected")
    return client

  def _retrying(self) -> tenacity.AsyncRetrying:
    return tenacity.AsyncRetrying(
        # Cancellation of the loop task must propagate, never retry.
        retry=tenacity.retry_if_exception(
            lambda e: isinstance(e, Exception) and not is_interruption(e)
        ),
        wait=tenacity.wait_exponential(
            multiplier=self._config.retry_base_delay,
            max=self._config.retry_max_delay,
        ),
        stop=tenacity.stop_any(
            tenacity.stop_after_attempt(self._config.max_consecutive_failures),
            lambda retry_state: not self._active(),
        ),
        before_sleep=_log_retry_warning,
        reraise=True,
    )

  async def _fish_if_active(self, client: game_client.GameClient) -> None:
    # Checked when the cast actually begins, so a stop either lands before
    # the cast or finds it in flight.
    if not self._active():
      raise FishingInterruptedError("Fishing stopped")
    await client.fish()

  async def _cast(self) -> game_client.GameClient:
    if not self._active():
      raise FishingInterruptedError("Fishing stopped")
    client = self._current_client()
    try:
      await asyncio.wait_for(
          self._fish_if_active(client), timeout=self._config.fish_timeout
      )
    except asyncio.TimeoutError as e:
      raise TimeoutError(
          f"No catch within {self._config.fish_timeout:.0f}s"
      ) from e
    except Exception as e:
      if is_interruption(e):
        raise FishingInterruptedError(str(e)) from e
      raise
    return client

  async def run(self) -> None:
    while self._active():
      try:
        async for attempt in self._retrying():
          with attempt:
            client = await self._cast()
      except FishingInterruptedError as e:
        if self._active():
          self._session.is_active = False
          self._session.stop_reason = f"Fishing was interrupted: {e}"
        logging.info("Fishing interrupted, leaving the loop")
        break
      except Exception as e:  # pylint: disable=broad-exception-caught
        if not self._active():
          break
        self._give_up(e)
        break

      # Stop requested while the cast was in flight.
      if not self._active():
        break

      self._record_latest_catch(client)
      await asyncio.sleep(self._config.cast_delay)

  def _give_up(self, error: Exception) -> None:
    session = self._session
    reason = (
        f"Stopped after {self._config.max_consecutive_failures} failed casts "
        f"in a row: {str(error) or type(error).__name__}"
    )
    session.is_active = False
    session.stop_reason = reason
    logging.error("%s", reason)
    try:
      self._current_client().chat(
          "Something keeps fouling my line. I'm putting the rod away for now."
      )
    except Exception:  # pylint: disable=broad-exception-caught
      logging.exception("Could not announce that fishing stopped")

  def _record_latest_catch(self, client: game_client.GameClient) -> None:
    items = client.inventory_items()
    if not items:
      return

    item_name = items[-1].name
    kind = classify_catch(item_name)
    session = self._session
    session.catches.append(
        CatchRecord(
            item=item_name,
            timestamp=self._clock(),
            is_treasure=kind == CatchKind.TREASURE,
        )
    )

    if kind == CatchKind.TREASURE:
      session.treasures.append(item_name)
      if self._announce:
        client.chat(
            f"{self._rng.choice(CATCH_MESSAGES[kind])} Caught: {item_name}"
        )
    elif self._announce and kind != CatchKind.JUNK:
      client.chat(f"{self._rng.choice(CATCH_MESSAGES[kind])} {item_name}")


def _on_loop_done(session: FishingSession, task: asyncio.Task) -> None:
  if session.task is not task:
    return
  if task.cancelled():
    session.is_active = False
    return
  error = task.exception()
  if error is not None:
    session.is_active = False
    session.stop_reason = f"Fishing loop crashed: {error}"
    logging.error("Fishing loop crashed: %s", error)


async def start_fishing(
    client: game_client.GameClient,
    session: FishingSession,
    announce: bool = False,
    config: Optional[config_lib.FishingConfig] = None,
    clock: Callable[[], float] = time.time,
    rng: Optional[random.Random] = None,
    client_provider: Optional[ClientProvider] = None,
) -> str:
  """Equips a rod and starts the fishing loop in the background.

  Args:
    client: Connected game client, used to equip the rod.
    session: Session of the bot behind `client`.
    announce: Whether to comment on catches in chat.
    config: Loop pacing and failure policy.
    clock: Wall clock, seconds.
    rng: Picks flavor messages.
    client_provider: Returns the live client for each cast. Defaults to
      always returning `client`.

  Returns:
    Text for the caller describing the outcome.
  """
  if session.is_active:
    return ("I'm already fishing. Use fish-stop to stop, or fish-status to "
            "check progress.")

  rod = _find_rod(client)
  if rod is None:
    return ("I don't have a fishing rod in my inventory. "
            "Please provide one.")

  try:
    await client.equip(rod, "hand")
  except Exception as e:  # pylint: disable=broad-exception-caught
    return f"Couldn't equip the fishing rod: {e}"

  session.reset(clock())
  client.chat(START_CHAT)

  loop = _FishingLoop(
      client_provider=client_provider or (lambda: client),
      session=session,
      announce=announce,
      config=config or config_lib.FishingConfig(),
      clock=clock,
      rng=rng or random.Random(),
  )
  session.task = asyncio.create_task(loop.run())
  session.task.add_done_callback(lambda task: _on_loop_done(session, task))

  enchanted = " (enchanted)" if rod.enchanted else ""
  return (
      "Fishing session started.\n"
      f"Rod equipped: {rod.name}{enchanted}\n"
      f"Announcements: {'on' if announce else 'off'}\n\n"
      "Use fish-status to check progress, fish-stop to end session."
  )


def stop_fishing(
    client: game_client.GameClient,
    session: FishingSession,
    clock: Callable[[], float] = time.time,
    abort_in_flight: bool = True,
) -> str:
  """Stops the loop and summarizes the session.

  The loop notices the stop before its next cast. With `abort_in_flight`
  the cast in progress is reeled in as well.
  """
  if not session.is_active:
    return "I'm not currently fishing."

  session.is_active = False
  if abort_in_flight:
    try:
      client.cancel_fish()
    except Exception as e:  # pylint: disable=broad-exception-caught
      logging.warning("Could not reel in: %s", e)

  duration = session.elapsed(clock())
  breakdown = collections.Counter(c.item for c in session.catches)

  text = "Fishing session complete.\n\n"
  text += f"Duration: {format_duration(duration)}\n"
  text += f"Total catches: {len(session.catches)}\n"
  text += f"Treasures found: {len(session.treasures)}\n\n"

  if breakdown:
    text += "Catch breakdown:\n"
    for item, count in sorted(breakdown.items(), key=lambda kv: -kv[1]):
      marker = " ★" if is_treasure(item) else ""
      text += f"  {item}: {count}{marker}\n"

  if session.treasures:
    text += f"\nTreasures: {', '.join(session.treasures)}"

  client.chat(STOP_CHAT)
  return text


def fishing_status(
    session: FishingSession,
    clock: Callable[[], float] = time.time,
    recent_count: int = 5,
) -> str:
  """Describes the running session without changing it."""
  if not session.is_active:
    text = "I'm not currently fishing. Use fish-start to begin."
    if session.stop_reason:
      text += f"\n\nLast session ended: {session.stop_reason}"
    return text

  duration = session.elapsed(clock())
  total = len(session.catches)
  recent = []
  if recent_count > 0:
    recent = [c.item for c in session.catches[-recent_count:]]

  text = "Fishing in progress...\n\n"
  text += f"Duration: {format_duration(duration)}\n"
  text += f"Total catches: {total}\n"
  text += f"Catch rate: {format_catch_rate(total, duration)}/min\n"
  text += f"Treasures found: {len(session.treasures)}\n"

  if recent:
    text += f"\nRecent: {', '.join(recent)}"
  if session.treasures:
    text += f"\nTreasures: {', '.join(session.treasures)}"
  return text
