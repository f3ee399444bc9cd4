import discord
from redbot.core import commands


def is_not_scanning():
    """
    A commands.check decorator that fails while an evaluation pass is running for the command author.
    Uses the LockHelper to check the user's pass locks.
    """

    async def predicate(ctx: commands.Context):
        if not hasattr(ctx.cog, 'lock_helper'):
            return True

        locks = ctx.cog.lock_helper.locks_for_user(ctx.author.id)
        if locks:
            lock = next(iter(locks.values()))
            embed = discord.Embed(
                title="⏳ Evaluation In Progress",
                description=f"{ctx.author.mention}, an evaluation pass is still running. Reason:\n\n*_"
                            f"{lock.get('message', 'Your plants are being evaluated.')}_*",
                color=discord.Color.orange()
            )
            embed.set_footer(text="Mutation Watch - Pass Lock System")
            await ctx.send(embed=embed, delete_after=10)
            return False
        return True

    return commands.check(predicate)


def is_cog_ready():
    """
    A commands.check decorator that fails if the cog's state has not yet been loaded.
    This prevents commands from running during the initial startup sequence.
    """

    async def predicate(ctx: commands.Context):
        if not getattr(ctx.cog, '_initialized', False):
            embed = discord.Embed(
                title="⏳ System Initializing",
                description="Mutation Watch is still coming online. Please wait a moment and try your command again.",
                color=discord.Color.orange()
            )
            await ctx.send(embed=embed, delete_after=10)
            return False
        return True

    return commands.check(predicate)
