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

"""Registers bot tools on an MCP server.

Every tool registered through `ToolFactory` first makes sure the bot is
connected. When it is not, the caller gets the connection diagnostic instead
of a tool result.
"""

import functools
from typing import Any, Awaitable, Callable, Dict

from absl import logging
from mcp.server.fastmcp import FastMCP

from dannicraft import bot_connection
from dannicraft import game_client

ToolHandler = Callable[..., Awaitable[str]]


class BotNotConnectedError(RuntimeError):
  """A tool needed the game client while none was available."""


class ToolFactory:
  """Wraps tool handlers with the connection check and registers them."""

  def __init__(
      self,
      server: FastMCP,
      connection: bot_connection.BotConnection,
  ):
    self._server = server
    self._connection = connection
    self._tools: Dict[str, ToolHandler] = {}

  @property
  def tools(self) -> Dict[str, ToolHandler]:
    """Registered tools by name, as wrapped and exposed to the server."""
    return dict(self._tools)

  def get_bot(self) -> game_client.GameClient:
    """Returns the live client. Only valid inside a tool call."""
    client = self._connection.get_client()
    if client is None:
      raise BotNotConnectedError("Bot is not connected")
    return client

  def create_response(self, text: str) -> str:
    return text

  def create_error_response(self, error: Any) -> str:
    return f"Error: {bot_connection.format_error(error)}"

  def register_tool(
      self,
      name: str,
      description: str,
      handler: ToolHandler,
  ) -> ToolHandler:
    """Registers `handler` under `name`.

    The handler's signature defines the tool's input schema. Exceptions
    escaping the handler are logged and reported as an error response.

    Returns:
      The wrapped handler as registered on the server.
    """

    @functools.wraps(handler)
    async def tool(*args: Any, **kwargs: Any) -> str:
      check = await self._connection.check_connection_and_reconnect()
      if not check.connected:
        return self.create_response(
            check.message or bot_connection.connection_help_message()
        )
      try:
        return await handler(*args, **kwargs)
      except Exception as e:  # pylint: disable=broad-exception-caught
        logging.exception("Tool %s failed", name)
        return self.create_error_response(e)

    self._server.add_tool(tool, name=name, description=description)
    self._tools[name] = tool
    return tool
