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

"""Tests for the mineflayer-backed client, with the Node bridge mocked."""

import asyncio
import sys
import threading
import unittest
from unittest import mock

from absl.testing import absltest

from dannicraft import game_client

# Importing the bridge starts a Node.js process; these tests never need one.
with mock.patch.dict(sys.modules, {"javascript": mock.MagicMock()}):
  from dannicraft import mineflayer_client  # pylint: disable=g-import-not-at-top


class MineflayerClientTest(unittest.IsolatedAsyncioTestCase):

  async def asyncSetUp(self):
    await super().asyncSetUp()
    self.js = mock.MagicMock()
    self.handlers = {}

    def on(emitter, name):
      del emitter  # Unused.

      def register(handler):
        self.handlers[name] = handler
        return handler

      return register

    self.js.On.side_effect = on
    patcher = mock.patch.object(mineflayer_client, "javascript", self.js)
    patcher.start()
    self.addCleanup(patcher.stop)

    self.bot = self.js.require.return_value.createBot.return_value
    self.client = mineflayer_client.MineflayerClient(
        game_client.ClientOptions(
            host="localhost", port=25565, username="danniCRAFT",
            auth="offline",
        )
    )

  async def test_cancel_without_cast_does_not_touch_rod(self):
    self.client.cancel_fish()

    self.bot.activateItem.assert_not_called()

  async def test_cancel_reels_in_cast_in_flight(self):
    started = threading.Event()
    release = threading.Event()

    def blocking_fish(*args, **kwargs):
      del args, kwargs  # Unused.
      started.set()
      release.wait(5)

    self.bot.fish.side_effect = blocking_fish
    cast = asyncio.create_task(self.client.fish())
    await asyncio.get_running_loop().run_in_executor(None, started.wait, 5)

    self.client.cancel_fish()
    self.bot.activateItem.assert_called_once_with()

    release.set()
    await cast
    self.client.cancel_fish()
    self.bot.activateItem.assert_called_once_with()

  async def test_chat_event_is_delivered_on_the_loop(self):
    seen = []
    self.client.on(game_client.GameEvent.CHAT, lambda u, m: seen.append((u, m)))

    self.handlers["chat"](self.bot, "Steve", "hi there")
    await asyncio.sleep(0)

    self.assertEqual(seen, [("Steve", "hi there")])


if __name__ == "__main__":
  absltest.main()
