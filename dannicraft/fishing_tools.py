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

"""The fish-start, fish-stop and fish-status tools."""

import time
from typing import Annotated, Callable, Optional

from pydantic import Field

from dannicraft import config as config_lib
from dannicraft import fishing
from dannicraft import tool_factory


def register_fishing_tools(
    factory: tool_factory.ToolFactory,
    sessions: fishing.FishingSessions,
    config: Optional[config_lib.FishingConfig] = None,
    clock: Callable[[], float] = time.time,
) -> None:
  config = config or config_lib.FishingConfig()

  async def fish_start(
      announce: Annotated[
          bool,
          Field(
              description=(
                  "Whether to announce catches in chat (default: false, "
                  "reduces spam)"
              )
          ),
      ] = False,
  ) -> str:
    bot = factory.get_bot()
    session = sessions.get(bot.username)
    return factory.create_response(
        await fishing.start_fishing(
            bot, session, announce=announce, config=config, clock=clock,
            client_provider=factory.get_bot,
        )
    )

  async def fish_stop() -> str:
    bot = factory.get_bot()
    session = sessions.get(bot.username)
    return factory.create_response(
        fishing.stop_fishing(bot, session, clock=clock)
    )

  async def fish_status() -> str:
    bot = factory.get_bot()
    session = sessions.get(bot.username)
    return factory.create_response(
        fishing.fishing_status(
            session, clock=clock, recent_count=config.recent_catch_count
        )
    )

  factory.register_tool(
      "fish-start",
      f"Start fishing. {config_lib.BOT_NAME} will continuously fish until "
      "stopped. Requires a fishing rod in inventory.",
      fish_start,
  )
  factory.register_tool(
      "fish-stop",
      "Stop the current fishing session and get a summary of catches.",
      fish_stop,
  )
  factory.register_tool(
      "fish-status",
      "Get the current status of the fishing session, including catches "
      "and treasures found.",
      fish_status,
  )
