from typing import List, Optional

import discord

from ..models import (
    ACTIVE_WEATHERS,
    WEATHER_SNOW,
    DebugSnapshot,
    DebugWeatherEntry,
    MutationSummary,
    WeatherWindow,
    is_active_weather,
)
from .data_helper import DataHelper
from .time_helper import TimeHelper

MAX_LISTED_PLANTS = 15
FOOTER_TEXT = "Mutation Watch - Weather Monitoring"


def window_key(window: Optional[WeatherWindow]) -> Optional[str]:
    """Identifies one weather window so a player is alerted at most once per window."""

    if window is None:
        return None
    anchor = window.started_at if window.started_at is not None else window.expected_end_at
    return f"{window.weather}:{anchor}"


class NotificationHelper:
    """Renders summaries and debug listings as Discord embeds."""

    def __init__(self, data_helper: DataHelper):
        self.data_helper = data_helper

    def weather_title(self, weather: str) -> str:
        definition = self.data_helper.get_weather(weather)
        return f"{definition.emoji} {definition.name}"

    @staticmethod
    def _window_lines(window: Optional[WeatherWindow]) -> List[str]:
        if window is None:
            return []
        lines = [f"Time remaining: **{TimeHelper.format_duration(window.remaining_ms)}**"]
        if window.expected_end_at is not None:
            lines.append(f"Ends at: {TimeHelper.format_est_clock(window.expected_end_at)}")
        return lines

    @staticmethod
    def _plant_line(entry: DebugWeatherEntry, weather: str) -> str:
        line = f"• **{entry.name}**: {entry.pending_fruit}/{entry.fruit_count} fruit pending"
        if weather == WEATHER_SNOW and entry.needs_snow_fruit:
            line += f" ({entry.needs_snow_fruit} wet, needs snow)"
        return line

    def _plant_lines(self, entries: List[DebugWeatherEntry], weather: str) -> str:
        lines = [self._plant_line(entry, weather) for entry in entries[:MAX_LISTED_PLANTS]]
        if len(entries) > MAX_LISTED_PLANTS:
            lines.append(f"...and {len(entries) - MAX_LISTED_PLANTS} more.")
        return "\n".join(lines)

    def build_alert_embed(self, user: discord.abc.User, snapshot: DebugSnapshot) -> Optional[discord.Embed]:
        """Alert listing the plants to place for the active weather, or None when there are none."""

        summary = snapshot.summary
        weather = summary.active_weather
        if not is_active_weather(weather):
            return None

        entries = snapshot.per_weather.get(weather, [])
        totals = summary.totals[weather]
        if not entries or totals.plant_count == 0:
            return None

        definition = self.data_helper.get_weather(weather)
        description = [
            f"{user.mention}, **{totals.plant_count}** plant(s) with **{totals.pending_fruit_count}** pending fruit "
            f"can be placed out {definition.action}.",
            *self._window_lines(summary.weather_window),
        ]

        embed = discord.Embed(
            title=f"{self.weather_title(weather)}: Plants To Place",
            description="\n".join(description),
            color=discord.Color.blue()
        )
        embed.add_field(name=f"Plants ({snapshot.source})", value=self._plant_lines(entries, weather)[:1024],
                        inline=False)
        embed.set_footer(text=FOOTER_TEXT)
        return embed

    def build_status_embed(self, weather: str, summaries: dict, window: Optional[WeatherWindow]) -> discord.Embed:
        embed = discord.Embed(
            title=f"🌦️ Mutation Status: {self.weather_title(weather)}",
            description="\n".join(self._window_lines(window)) or "No active mutation weather.",
            color=discord.Color.teal()
        )

        if not summaries:
            embed.add_field(name="No Data", value="No evaluation has run yet. Upload a snapshot with `mutations sync`.",
                            inline=False)

        for source, summary in summaries.items():
            embed.add_field(name=f"Source: {source}", value=self.summary_lines(summary), inline=False)

        embed.set_footer(text=FOOTER_TEXT)
        return embed

    def summary_lines(self, summary: MutationSummary) -> str:
        lines = [
            f"Tracked plants: **{summary.overall_tracked_plant_count}**",
            f"Eligible now: **{summary.overall_eligible_plant_count}** "
            f"({summary.overall_pending_fruit_count} fruit pending)",
        ]
        for weather in ACTIVE_WEATHERS:
            totals = summary.totals[weather]
            line = f"{self.weather_title(weather)}: {totals.plant_count} plant(s), {totals.pending_fruit_count} fruit"
            if totals.needs_snow_fruit_count:
                line += f", {totals.needs_snow_fruit_count} need snow"
            lines.append(line)
        lines.append(
            f"Lunar: {summary.lunar.tracked_plant_count} tracked, {summary.lunar.pending_plant_count} pending, "
            f"{summary.lunar.mutated_plant_count} done"
        )
        return "\n".join(lines)

    def build_debug_embed(self, snapshot: DebugSnapshot) -> discord.Embed:
        summary = snapshot.summary
        embed = discord.Embed(
            title=f"🔎 Mutation Debug: {snapshot.source}",
            description=f"Generated at {TimeHelper.format_est_clock(snapshot.generated_at)} "
                        f"during {self.weather_title(summary.active_weather)}.",
            color=discord.Color.dark_teal()
        )

        for weather in ACTIVE_WEATHERS:
            entries = snapshot.per_weather.get(weather, [])
            value = self._plant_lines(entries, weather) if entries else "None"
            embed.add_field(name=self.weather_title(weather), value=value[:1024], inline=False)

        metadata_lines = [f"{key}: {value}" for key, value in sorted(snapshot.metadata.items())]
        if metadata_lines:
            metadata_text = "\n".join(metadata_lines)[:1000]
            embed.add_field(name="Metadata", value=f"```\n{metadata_text}\n```", inline=False)

        embed.set_footer(text=FOOTER_TEXT)
        return embed
