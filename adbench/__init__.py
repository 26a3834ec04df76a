"""Ad-redirect HTTP servers on aiohttp and a concurrent HTTP load-testing client."""

__version__ = "0.1.0"

__all__ = ["__version__"]