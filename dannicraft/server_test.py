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

import unittest

from absl.testing import absltest

from dannicraft import bot_connection
from dannicraft import config as config_lib
from dannicraft import game_client
from dannicraft import server
from dannicraft.tests import test_helpers


class BuildServerTest(unittest.IsolatedAsyncioTestCase):

  def setUp(self):
    super().setUp()
    self.factory = test_helpers.FakeClientFactory()
    self.bot = server.build_server(
        config_lib.ConnectionConfig(),
        callbacks=bot_connection.ConnectionCallbacks(
            on_log=test_helpers.LogRecorder()
        ),
        reconnect=config_lib.ReconnectConfig(
            delay=0.01, wait_margin=0.05, poll_interval=0.005
        ),
        client_factory=self.factory,
    )

  async def test_does_not_connect(self):
    self.assertEqual(self.factory.created, [])
    self.assertEqual(
        self.bot.connection.get_state(),
        bot_connection.ConnectionState.DISCONNECTED,
    )

  async def test_exposes_fishing_tools(self):
    tools = {tool.name: tool for tool in await self.bot.mcp.list_tools()}

    self.assertEqual(
        sorted(tools), ["fish-start", "fish-status", "fish-stop"]
    )
    self.assertIn("announce", tools["fish-start"].inputSchema["properties"])
    self.assertIn("Requires a fishing rod", tools["fish-start"].description)

  async def test_tool_call_while_offline_returns_diagnostic(self):
    text = await self.bot.tools.tools["fish-status"]()

    self.assertIn("Cannot connect to Minecraft server.", text)
    self.assertEqual(len(self.factory.created), 1)

  async def test_tool_call_after_spawn(self):
    self.bot.connection.connect()
    self.factory.last.emit(game_client.GameEvent.SPAWN)

    text = await self.bot.tools.tools["fish-start"]()

    self.assertIn("I don't have a fishing rod", text)


if __name__ == "__main__":
  absltest.main()
