from .checks import is_cog_ready, is_not_scanning
