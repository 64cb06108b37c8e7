import logging
import asyncio
import signal

from config import env, env_int
from src.logger import setup_logging
from src.webapp import models  # noqa: F401  (registers tables on Base.metadata)
from src.webapp.database import init_db, engine
from src.webapp.main import run_app

setup_logging()
logger = logging.getLogger("main")


async def main():
    await init_db(recreate=False)
    tasks = [
        asyncio.create_task(run_app(env("HOST", "0.0.0.0"), env_int("PORT", 8000))),
    ]

    async def shutdown():
        logger.warning("🛑 Shutting down gracefully...")
        for task in tasks:
            if not task.done(): task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await engine.dispose()
        logger.info("✅ All background tasks stopped cleanly.")

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(shutdown()))

    try: await asyncio.gather(*tasks)
    except asyncio.CancelledError: logger.info("Tasks cancelled, exiting gracefully.")
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        await shutdown()


if __name__ == "__main__":
    try: asyncio.run(main())
    except KeyboardInterrupt: logger.warning("Interrupted manually (Ctrl+C). Exiting.")
