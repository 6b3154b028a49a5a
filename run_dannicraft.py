#!/usr/bin/env python3
"""Run the danniCRAFT Minecraft bot as an MCP tool server.

The bot connects to a Minecraft server or Realm and exposes its tools over
stdio, so an MCP client (for example an LLM desktop app) can drive it.

Prerequisites:
1. Node.js with mineflayer, mineflayer-pathfinder and minecraft-data
   (installed on first use by the `javascript` package)
2. A reachable server, or a Realm on a Microsoft account

Usage:
  # LAN world opened on port 25565
  python run_dannicraft.py --host=localhost --port=25565

  # Realm, partial name match
  python run_dannicraft.py --auth=microsoft --realm="My Realm"
"""

import asyncio
import sys

import termcolor
from absl import app, flags, logging
from pydantic import ValidationError

from dannicraft import bot_connection
from dannicraft import config as config_lib
from dannicraft import server

colored = termcolor.colored

# Command line flags
_HOST = flags.DEFINE_string(
    "host", "localhost", "Minecraft server host (ignored when using --realm)"
)
_PORT = flags.DEFINE_integer(
    "port", 25565, "Minecraft server port (ignored when using --realm)"
)
_USERNAME = flags.DEFINE_string(
    "username", config_lib.BOT_NAME,
    "Bot username (ignored for Microsoft auth)"
)
_AUTH = flags.DEFINE_enum(
    "auth", "offline", ["microsoft", "offline"],
    'Authentication type: "microsoft" for Realms/online, "offline" for LAN'
)
_VERSION = flags.DEFINE_string(
    "mc_version", None,
    'Minecraft version (e.g., "1.21.4"). Auto-detected if not specified.'
)
_REALM = flags.DEFINE_string(
    "realm", None,
    "Realm name to connect to (requires --auth microsoft). "
    "Partial match supported."
)
_RECONNECT_DELAY = flags.DEFINE_float(
    "reconnect_delay", None,
    "Seconds to wait before reconnecting. "
    "Defaults to DANNICRAFT_RECONNECT_DELAY or 2.0."
)


def config_from_flags() -> config_lib.ConnectionConfig:
  """Builds the connection config from parsed flags."""
  try:
    return config_lib.ConnectionConfig(
        host=_HOST.value,
        port=_PORT.value,
        username=_USERNAME.value,
        auth=_AUTH.value,
        version=_VERSION.value,
        realm=_REALM.value,
    )
  except ValidationError as e:
    raise app.UsageError(str(e)) from e


def reconnect_from_flags() -> config_lib.ReconnectConfig:
  reconnect = config_lib.ReconnectConfig.from_env()
  if _RECONNECT_DELAY.value is not None:
    reconnect = config_lib.ReconnectConfig(
        delay=_RECONNECT_DELAY.value,
        wait_margin=reconnect.wait_margin,
        poll_interval=reconnect.poll_interval,
    )
  return reconnect


def print_chat(username: str, message: str) -> None:
  # stdout carries the MCP protocol; chat goes to stderr.
  print(
      f"{colored(username, 'cyan', attrs=['bold'])}: {message}",
      file=sys.stderr,
      flush=True,
  )


def main(argv):
  if len(argv) > 1:
    raise app.UsageError("Too many command-line arguments.")

  config = config_from_flags()
  fishing_config = config_lib.FishingConfig.from_env()
  try:
    fishing_config.validate()
  except ValueError as e:
    raise app.UsageError(str(e)) from e

  print(
      colored(
          f"{config_lib.BOT_NAME} -> {config.server_label} "
          f"({config.auth} auth)",
          "magenta",
          attrs=["bold"],
      ),
      file=sys.stderr,
  )

  callbacks = bot_connection.ConnectionCallbacks(
      on_log=bot_connection.absl_log_callback,
      on_chat_message=print_chat,
  )
  try:
    asyncio.run(
        server.serve(
            config,
            callbacks=callbacks,
            reconnect=reconnect_from_flags(),
            fishing_config=fishing_config,
        )
    )
  except KeyboardInterrupt:
    logging.info("Interrupted, shutting down")


def run():
  app.run(main)


if __name__ == "__main__":
  run()
