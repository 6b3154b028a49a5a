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

"""Wires the game connection, fishing sessions and MCP tools together."""

import dataclasses
from typing import Optional

from absl import logging
from mcp.server.fastmcp import FastMCP

from dannicraft import bot_connection
from dannicraft import config as config_lib
from dannicraft import fishing
from dannicraft import fishing_tools
from dannicraft import game_client
from dannicraft import tool_factory


@dataclasses.dataclass
class BotServer:
  """Everything one running bot owns."""
  connection: bot_connection.BotConnection
  sessions: fishing.FishingSessions
  mcp: FastMCP
  tools: tool_factory.ToolFactory


def build_server(
    config: config_lib.ConnectionConfig,
    callbacks: Optional[bot_connection.ConnectionCallbacks] = None,
    reconnect: Optional[config_lib.ReconnectConfig] = None,
    fishing_config: Optional[config_lib.FishingConfig] = None,
    client_factory: Optional[game_client.ClientFactory] = None,
) -> BotServer:
  """Builds the bot without connecting it."""
  connection = bot_connection.BotConnection(
      config,
      callbacks=callbacks,
      reconnect=reconnect,
      client_factory=client_factory,
  )
  sessions = fishing.FishingSessions()
  mcp = FastMCP(config_lib.BOT_NAME)
  tools = tool_factory.ToolFactory(mcp, connection)
  fishing_tools.register_fishing_tools(tools, sessions, config=fishing_config)
  return BotServer(
      connection=connection, sessions=sessions, mcp=mcp, tools=tools
  )


async def serve(
    config: config_lib.ConnectionConfig,
    callbacks: Optional[bot_connection.ConnectionCallbacks] = None,
    reconnect: Optional[config_lib.ReconnectConfig] = None,
    fishing_config: Optional[config_lib.FishingConfig] = None,
) -> None:
  """Connects the bot and serves its tools over stdio until stdin closes."""
  bot = build_server(
      config,
      callbacks=callbacks,
      reconnect=reconnect,
      fishing_config=fishing_config,
  )
  bot.connection.connect()
  try:
    logging.info("Serving %s tools over stdio", len(bot.tools.tools))
    await bot.mcp.run_stdio_async()
  finally:
    bot.connection.cleanup()
