async def setup(bot):
    from .mutation_watch import MutationWatch

    await bot.add_cog(MutationWatch(bot))
