import asyncio
import json
import time
import traceback
from typing import Any, Dict, List, Optional

import discord
from redbot.core import Config, commands, data_manager

from .decorators import is_cog_ready, is_not_scanning
from .helpers import (
    TimeHelper,
    LockHelper,
    LoggingHelper,
    DataHelper,
    GameStateHelper,
    SlotHelper,
    InventoryHelper,
    InventorySource,
    ScanHelper,
    GardenHelper,
    EvaluationHelper,
    SummaryHelper,
    SummaryEnvelope,
    WeatherHub,
    MutationTracker,
    NotificationHelper,
    normalize_weather_kind,
    window_key,
)
from .helpers.game_state_helper import DEFAULT_SETTINGS, DEFAULT_USER_STATE
from .helpers.inventory_helper import item_has_slots, json_file_source
from .helpers.payload_helper import as_item_list, coerce_int
from .models import SUMMARY_SOURCES, WEATHER_UNKNOWN, VisibleItem, WeatherSnapshot, is_active_weather


class MutationWatch(commands.Cog):
    """Mutation Watch - Flags the plants that can still gain a mutation from the current weather."""

    DISCORD_LOG_CHANNEL_ID = 0
    SHARED_CACHE_DIR = "shared_cache"
    SNAPSHOT_KEYS = ("inventory", "visible", "garden", "weather")
    MAX_SNAPSHOT_BYTES = 4 * 1024 * 1024
    DEFAULT_OVERRIDE_MINUTES = 5

    def __init__(self, bot: commands.Bot):
        self._initialized = False

        self.bot = bot
        self.config = Config.get_conf(self, identifier=734829105623041877)
        self.config.register_global(settings=dict(DEFAULT_SETTINGS))
        self.config.register_user(**DEFAULT_USER_STATE)

        self.cog_data_path = data_manager.bundled_data_path(self)
        self.shared_cache_path = data_manager.cog_data_path(self) / self.SHARED_CACHE_DIR
        self.lock_helper = LockHelper()
        self.logger = LoggingHelper(bot, self.DISCORD_LOG_CHANNEL_ID)
        self.data_loader = DataHelper(self.cog_data_path, self.logger)
        self.data_loader.load_all_data()

        self.game_state_helper = GameStateHelper(self.config, self.logger)

        self.slot_helper = SlotHelper(self.logger)
        self.inventory_helper = InventoryHelper(self.slot_helper, self.logger)
        self.scan_helper = ScanHelper(self.slot_helper, self.logger, self.data_loader.non_plant_words)
        self.garden_helper = GardenHelper(self.slot_helper, self.logger)
        self.evaluation_helper = EvaluationHelper(self.logger)
        self.summary_helper = SummaryHelper(self.evaluation_helper, self.logger, self.data_loader.durations_ms())
        self.weather_hub = WeatherHub(self.logger)
        self.notification_helper = NotificationHelper(self.data_loader)

        self.trackers: Dict[int, MutationTracker] = {}
        self.global_inventory: Dict[int, Any] = {}
        self._unsubscribe_weather = None

        self.watch_task = self.bot.loop.create_task(self.startup_and_watch_loop())

    def cog_unload(self):
        """Cog cleanup method."""

        if self.watch_task:
            self.watch_task.cancel()

        if self._unsubscribe_weather:
            self._unsubscribe_weather()

        for tracker in self.trackers.values():
            tracker.cancel()

        self.lock_helper.clear_all_locks()
        self.logger.init_log("Mutation watch systems are now offline.", "INFO")

    async def _load_and_initialize_state(self):
        await self.game_state_helper.load_game_state()

        log_channel_id = self.game_state_helper.get_setting("log_channel_id")
        if log_channel_id:
            self.logger.log_channel_id = log_channel_id
        self.logger.debug_enabled = bool(self.game_state_helper.get_setting("debug_decisions"))

        for user_id in self.game_state_helper.get_all_user_ids():
            if self.game_state_helper.get_snapshot(user_id):
                self.get_tracker(user_id)

        self._unsubscribe_weather = self.weather_hub.subscribe(self._on_weather_change, fire_immediately=False)

    async def startup_and_watch_loop(self):
        """The main background task for the cog."""

        await self.bot.wait_until_ready()
        await self.logger.flush_init_log_queue()
        await self.logger.log_to_discord("Watch Loop: System Online.", "INFO")

        await self._load_and_initialize_state()

        self._initialized = True

        await self.logger.log_to_discord("Watch Loop: Startup complete. Entering evaluation cycle.", "INFO")
        loop_counter = 0
        while not self.bot.is_closed():
            try:
                loop_start_time = time.monotonic()

                self.weather_hub.refresh()

                if self.game_state_helper.get_setting("enabled"):
                    for tracker in list(self.trackers.values()):
                        tracker.schedule()

                await self.game_state_helper.commit_to_disk()

                loop_duration = time.monotonic() - loop_start_time
                self.logger.log(
                    f"Watch Loop: Cycle {loop_counter} scheduled {len(self.trackers)} tracker(s) in "
                    f"{loop_duration:.2f}s.", "DEBUG")
            except Exception as e:
                await self.logger.log_to_discord(
                    f"Watch Loop: CRITICAL Anomaly in cycle {loop_counter}: {e}\n{traceback.format_exc()}", "CRITICAL")

            loop_counter += 1
            poll_interval = self.game_state_helper.get_setting("poll_interval_seconds", 60)
            await asyncio.sleep(max(1, poll_interval))

    def get_tracker(self, user_id: int) -> MutationTracker:
        """Returns the player's tracker, creating and wiring it on first use."""

        tracker = self.trackers.get(user_id)
        if tracker is not None:
            return tracker

        tracker = MutationTracker(
            user_id,
            inventory_helper=self.inventory_helper,
            scan_helper=self.scan_helper,
            garden_helper=self.garden_helper,
            summary_helper=self.summary_helper,
            weather_hub=self.weather_hub,
            lock_helper=self.lock_helper,
            logger=self.logger,
            inventory_sources=lambda: self._inventory_sources(user_id),
            visible_items=lambda: self._visible_items(user_id),
            garden_snapshot=lambda: self.game_state_helper.get_snapshot(user_id).get("garden"),
            debounce_seconds=self.game_state_helper.get_setting("debounce_ms", 75) / 1000,
        )
        tracker.registry.subscribe(lambda envelope: self._on_summary(user_id, envelope), fire_immediately=False)
        self.trackers[user_id] = tracker
        return tracker

    def _inventory_sources(self, user_id: int) -> List[InventorySource]:
        """Raw inventory fetchers in priority order: the player's upload, the shared cache, then memory."""

        async def character_store():
            return self.game_state_helper.get_snapshot(user_id).get("inventory")

        async def global_cache():
            return self.global_inventory.get(user_id)

        return [
            InventorySource("character", character_store),
            json_file_source("shared_cache", self.shared_cache_path / f"{user_id}.json"),
            InventorySource("global_cache", global_cache),
        ]

    def _visible_items(self, user_id: int) -> List[VisibleItem]:
        rows = self.game_state_helper.get_snapshot(user_id).get("visible") or []
        items = (ScanHelper.visible_item_from_dict(row) for row in rows if isinstance(row, dict))
        return [item for item in items if item is not None]

    def _on_weather_change(self, snapshot: WeatherSnapshot):
        self.logger.log(f"Weather changed to {snapshot.kind} (source: {snapshot.source}).", "INFO")
        if not self.game_state_helper.get_setting("enabled"):
            return
        for tracker in list(self.trackers.values()):
            tracker.schedule()

    def _on_summary(self, user_id: int, envelope: SummaryEnvelope):
        if is_active_weather(envelope.summary.active_weather) and envelope.summary.overall_eligible_plant_count:
            self.bot.loop.create_task(self._notify_user(user_id, envelope.source))

    async def _notify_user(self, user_id: int, source: str):
        """Sends the weather alert once per weather window, to the chosen channel or else by DM."""

        if not self.game_state_helper.get_setting("enabled") or \
                not self.game_state_helper.notifications_enabled(user_id):
            return

        tracker = self.trackers.get(user_id)
        snapshot = tracker.registry.debug_get(source) if tracker else None
        if snapshot is None:
            return

        key = window_key(snapshot.summary.weather_window)
        if key is None or key == self.game_state_helper.get_last_notified_window(user_id):
            return

        discord_user = self.bot.get_user(user_id)
        if not discord_user:
            return

        embed = self.notification_helper.build_alert_embed(discord_user, snapshot)
        if embed is None:
            return

        self.game_state_helper.set_user_value(user_id, "last_notified_window", key)

        channel_id = self.game_state_helper.get_channel_id(user_id)
        target_channel = self.bot.get_channel(channel_id) if channel_id else None

        sent_to_channel = False
        if isinstance(target_channel, discord.TextChannel):
            try:
                await target_channel.send(content=discord_user.mention, embed=embed,
                                          allowed_mentions=discord.AllowedMentions(users=True))
                sent_to_channel = True
            except (discord.Forbidden, discord.HTTPException) as e:
                self.logger.log(f"Alert for user {user_id} could not be sent to channel {channel_id}: {e}",
                                "WARNING")

        if not sent_to_channel:
            try:
                await discord_user.send(embed=embed)
            except (discord.Forbidden, discord.HTTPException) as e:
                self.logger.log(f"Alert for user {user_id} could not be sent by DM: {e}", "WARNING")

    def _apply_weather_report(self, report: Any, user_id: int):
        if not isinstance(report, dict):
            return
        kind = normalize_weather_kind(report.get("kind") or report.get("weather"))
        if kind == WEATHER_UNKNOWN:
            return
        self.weather_hub.update(
            kind,
            started_at=coerce_int(report.get("startedAt", report.get("started_at"))),
            expected_end_at=coerce_int(report.get("expectedEndAt", report.get("expected_end_at"))),
            source=f"sync:{user_id}",
        )

    def _status_embed(self, user_id: int) -> discord.Embed:
        weather_snapshot = self.weather_hub.current()
        window = self.summary_helper.derive_weather_window(weather_snapshot.kind, weather_snapshot)
        tracker = self.trackers.get(user_id)
        summaries = tracker.registry.get_all() if tracker else {}
        return self.notification_helper.build_status_embed(weather_snapshot.kind, summaries, window)

    @commands.group(name="mutations", invoke_without_command=True)
    @is_cog_ready()
    async def mutations_group(self, ctx: commands.Context):
        """Shows which of your plants can still gain a mutation from the current weather."""

        if ctx.invoked_subcommand is not None:
            return
        await ctx.send(embed=self._status_embed(ctx.author.id))

    @mutations_group.command(name="status")
    async def mutations_status_command(self, ctx: commands.Context):
        """Current weather, window remaining and your latest summary counts."""

        await ctx.send(embed=self._status_embed(ctx.author.id))

    @mutations_group.command(name="sync")
    @is_not_scanning()
    async def mutations_sync_command(self, ctx: commands.Context):
        """Upload a JSON snapshot (inventory, visible, garden) as an attachment."""

        if not ctx.message.attachments:
            embed = discord.Embed(title="❌ No Snapshot Attached",
                                  description=f"{ctx.author.mention}, attach a `.json` snapshot with any of the keys "
                                              f"`inventory`, `visible`, `garden` or `weather`.\n\n"
                                              f"**Syntax:** `{ctx.prefix}mutations sync` + attachment",
                                  color=discord.Color.orange())
            embed.set_footer(text="Mutation Watch - Command Syntax")
            await ctx.send(embed=embed)
            return

        attachment = ctx.message.attachments[0]
        if attachment.size > self.MAX_SNAPSHOT_BYTES:
            await ctx.send(embed=discord.Embed(title="❌ Snapshot Too Large",
                                               description=f"Snapshots are limited to "
                                                           f"{self.MAX_SNAPSHOT_BYTES // (1024 * 1024)} MB.",
                                               color=discord.Color.red()))
            return

        try:
            raw = await attachment.read()
            payload = json.loads(raw.decode('utf-8'))
        except (discord.HTTPException, UnicodeDecodeError, json.JSONDecodeError) as e:
            await ctx.send(embed=discord.Embed(title="❌ Invalid Snapshot",
                                               description=f"The attachment could not be read as JSON: {e}",
                                               color=discord.Color.red()))
            return

        if not isinstance(payload, dict) or not any(key in payload for key in self.SNAPSHOT_KEYS):
            await ctx.send(embed=discord.Embed(title="❌ Invalid Snapshot",
                                               description="The snapshot must be a JSON object with at least one of "
                                                           + ", ".join(f"`{key}`" for key in self.SNAPSHOT_KEYS) + ".",
                                               color=discord.Color.red()))
            return

        user_id = ctx.author.id
        stored = dict(self.game_state_helper.get_snapshot(user_id))
        for key in ("inventory", "visible", "garden"):
            if key in payload:
                stored[key] = payload[key]
        self.game_state_helper.set_snapshot(user_id, stored)

        inventory_items = as_item_list(payload.get("inventory"))
        if inventory_items and any(item_has_slots(item) for item in inventory_items):
            self.global_inventory[user_id] = payload["inventory"]

        self._apply_weather_report(payload.get("weather"), user_id)

        tracker = self.get_tracker(user_id)
        tracker.schedule()
        await tracker.flush()
        await self.game_state_helper.commit_to_disk()

        embed = self._status_embed(user_id)
        embed.title = "✅ Snapshot Synced"
        await ctx.send(embed=embed)

    @mutations_group.command(name="check")
    @is_not_scanning()
    async def mutations_check_command(self, ctx: commands.Context):
        """Re-evaluate your plants immediately."""

        if not self.game_state_helper.get_snapshot(ctx.author.id):
            embed = discord.Embed(title="❌ No Snapshot",
                                  description=f"{ctx.author.mention}, upload a snapshot first with "
                                              f"`{ctx.prefix}mutations sync`.",
                                  color=discord.Color.red())
            await ctx.send(embed=embed)
            return

        await self.get_tracker(ctx.author.id).run_now()
        await ctx.send(embed=self._status_embed(ctx.author.id))

    @mutations_group.command(name="notify")
    async def mutations_notify_command(self, ctx: commands.Context, state: str):
        """Turn weather alerts on or off."""

        state = state.lower()
        if state not in ("on", "off"):
            await ctx.send(embed=discord.Embed(title="❌ Invalid Input", description="Use `on` or `off`.",
                                               color=discord.Color.red()))
            return

        self.game_state_helper.set_user_value(ctx.author.id, "notifications", state == "on")
        await self.game_state_helper.commit_to_disk()

        embed = discord.Embed(title="✅ Alerts Updated",
                              description=f"Weather alerts are now **{state}** for {ctx.author.mention}.",
                              color=discord.Color.green())
        await ctx.send(embed=embed)

    @mutations_group.command(name="channel")
    async def mutations_channel_command(self, ctx: commands.Context, channel: Optional[discord.TextChannel] = None):
        """Send alerts to a channel; without a channel, alerts go to your DMs."""

        self.game_state_helper.set_user_value(ctx.author.id, "channel_id", channel.id if channel else None)
        await self.game_state_helper.commit_to_disk()

        target = channel.mention if channel else "your DMs"
        embed = discord.Embed(title="✅ Alert Destination Updated",
                              description=f"Weather alerts will be sent to {target}.",
                              color=discord.Color.green())
        await ctx.send(embed=embed)

    @mutations_group.command(name="debug")
    async def mutations_debug_command(self, ctx: commands.Context, source: Optional[str] = None):
        """Per-weather plant listing from your latest evaluation pass."""

        if source is not None and source not in SUMMARY_SOURCES:
            await ctx.send(embed=discord.Embed(title="❌ Invalid Source",
                                               description="Source must be one of "
                                                           + ", ".join(f"`{s}`" for s in SUMMARY_SOURCES) + ".",
                                               color=discord.Color.red()))
            return

        tracker = self.trackers.get(ctx.author.id)
        snapshot = tracker.registry.debug_get(source) if tracker else None
        if snapshot is None:
            await ctx.send(embed=discord.Embed(title="🔎 No Debug Data",
                                               description="No evaluation pass has run for you yet.",
                                               color=discord.Color.orange()))
            return

        await ctx.send(embed=self.notification_helper.build_debug_embed(snapshot))

    @commands.group(name="mutationsadmin")
    @is_cog_ready()
    @commands.is_owner()
    async def cmd_admin_group(self, ctx: commands.Context):
        """Base command for owner-only mutation watch utilities."""
        pass

    @cmd_admin_group.command(name="weather")
    async def admin_weather_command(self, ctx: commands.Context, kind: str, minutes: Optional[float] = None):
        """Override the weather for a while, or `clear` to resume reported weather."""

        if kind.lower() == "clear":
            self.weather_hub.clear_override()
            await ctx.send(embed=discord.Embed(title="✅ Weather Override Cleared",
                                               description=f"Weather is now **{self.weather_hub.current().kind}**.",
                                               color=discord.Color.green()))
            return

        normalized = normalize_weather_kind(kind)
        if normalized == WEATHER_UNKNOWN:
            await ctx.send(embed=discord.Embed(title="❌ Invalid Input",
                                               description=f"Unknown weather `{kind}`.",
                                               color=discord.Color.red()))
            return

        minutes = self.DEFAULT_OVERRIDE_MINUTES if minutes is None else minutes
        if minutes <= 0:
            await ctx.send(embed=discord.Embed(title="❌ Invalid Input",
                                               description="Override duration must be positive.",
                                               color=discord.Color.red()))
            return

        self.weather_hub.set_override(normalized, duration_seconds=minutes * 60)

        snapshot = self.weather_hub.current()
        embed = discord.Embed(
            title="⚙️ Debug: Weather Override",
            description=f"Weather forced to {self.notification_helper.weather_title(normalized)} until "
                        f"{TimeHelper.format_est_clock(snapshot.expected_end_at)}.",
            color=discord.Color.orange()
        )
        embed.set_footer(text="Mutation Watch - Weather Simulation")
        await ctx.send(embed=embed)

    @cmd_admin_group.command(name="debuglog")
    async def admin_debuglog_command(self, ctx: commands.Context, state: str):
        """Toggle per-plant decision logging."""

        state = state.lower()
        if state not in ("on", "off"):
            await ctx.send(embed=discord.Embed(title="❌ Invalid Input", description="Use `on` or `off`.",
                                               color=discord.Color.red()))
            return

        enabled = state == "on"
        self.game_state_helper.set_setting("debug_decisions", enabled)
        self.logger.debug_enabled = enabled
        await self.game_state_helper.commit_to_disk()

        await ctx.send(embed=discord.Embed(title="✅ Debug: Decision Logging Updated",
                                           description=f"Decision logging is now **{state}**.",
                                           color=discord.Color.green()))
