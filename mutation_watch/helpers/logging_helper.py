from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Optional, Tuple

import discord


class LoggingHelper:
    """Handles all logging operations, including Discord channel and console output."""

    MAX_QUEUED_LOGS = 200

    def __init__(self, bot: Optional[Any], log_channel_id: int = 0, debug_enabled: bool = False):
        self.bot = bot
        self.log_channel_id = log_channel_id
        self.debug_enabled = debug_enabled
        self._init_log_queue: Deque[Tuple[str, str]] = deque(maxlen=self.MAX_QUEUED_LOGS)

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')

    def _bot_ready(self) -> bool:
        return bool(self.bot) and self.bot.is_ready()

    @staticmethod
    def _chunks(message: str, size: int = 1900):
        for start in range(0, len(message), size):
            yield start // size + 1, message[start:start + size]

    async def log_to_discord(self, message: str, level: str = "INFO", embed: Optional[discord.Embed] = None):
        """Posts a log line to the mutation watch log channel, or to the console when none is set."""

        level = level.upper()
        if not self._bot_ready():
            self._init_log_queue.append((message, level))
            print(f"[LOG_QUEUE|{level}] Bot offline, holding: {message}")
            return

        if not self.log_channel_id:
            print(f"[{level}|{self._timestamp()}] {message}")
            return

        channel = self.bot.get_channel(self.log_channel_id)
        if not isinstance(channel, discord.TextChannel):
            print(f"[LOG_ERROR|{level}] Channel {self.log_channel_id} is not a text channel. Dropped: {message}")
            return

        header = f"`[{self._timestamp()}] [{level}]` "
        quiet = discord.AllowedMentions.none()

        try:
            if len(header) + len(message) <= 2000:
                await channel.send(content=header + message, embed=embed, allowed_mentions=quiet)
                return

            await channel.send(content=f"{header}Message split into parts below.", embed=embed, allowed_mentions=quiet)
            for part, text in self._chunks(message):
                await channel.send(f"```{level} part {part}```\n{text}", allowed_mentions=quiet)
        except discord.Forbidden:
            print(f"[LOG_FORBIDDEN] Missing permission for log channel {self.log_channel_id}.")
        except discord.HTTPException as e:
            print(f"[LOG_HTTP_ERROR] Log channel {self.log_channel_id} rejected a message: {e}")

    def log(self, message: str, level: str = "INFO"):
        """
        Synchronous logger for the evaluation core. Prints to console immediately and
        forwards to Discord when the bot loop is running; otherwise the line is queued.
        DEBUG lines are dropped unless decision logging is enabled.
        """

        if level.upper() == "DEBUG" and not self.debug_enabled:
            return

        print(f"[{level.upper()}|{self._timestamp()}] {message}")

        if level.upper() == "DEBUG":
            return

        if self._bot_ready() and hasattr(self.bot, 'loop') and self.bot.loop.is_running():
            self.bot.loop.create_task(self.log_to_discord(message, level=level))
        else:
            self._init_log_queue.append((message, level))

    def init_log(self, message: str, level: str = "INFO"):
        """
        Synchronous logger for use during cog initialization. Queues logs to be sent
        once the bot is ready. Also prints to console immediately.
        """

        print(f"[INIT_LOG|{level.upper()}|{self._timestamp()}] {message}")

        if self._bot_ready() and hasattr(self.bot, 'loop') and self.bot.loop.is_running():
            self.bot.loop.create_task(self.log_to_discord(message, level=level))
        else:
            self._init_log_queue.append((message, level))

    @property
    def queued_count(self) -> int:
        return len(self._init_log_queue)

    async def flush_init_log_queue(self):
        """Sends any queued logs generated before the bot was ready."""

        if self._init_log_queue:
            self.init_log(f"Flushing {len(self._init_log_queue)} queued startup logs...", "DEBUG")
            pending = list(self._init_log_queue)
            self._init_log_queue.clear()
            for msg, level in pending:
                await self.log_to_discord(msg, level)
