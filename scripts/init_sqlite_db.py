import asyncio
import os
import sys

# Add repo root to import path (so `import docrev` works when run as a script)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from docrev.config import settings
from docrev.db.session import Database
from docrev.utils.log_config import configure_logging


async def init_db() -> None:
    async with Database(settings) as db:
        await db.create_schema()


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    configure_logging(settings)
    asyncio.run(init_db())
