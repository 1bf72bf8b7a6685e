"""Main entry point for the chain dispatcher bot."""

from __future__ import annotations

import asyncio
import logging

import logfire

from chainbot.app import ChainApp
from chainbot.chains import ChainRegistry
from chainbot.config import Settings, load_settings
from chainbot.handlers import basic


class DefaultApp(ChainApp):
    def register_chains(self, registry: ChainRegistry) -> None:
        basic.register(registry)


def configure_logging(settings: Settings) -> None:
    logfire.configure(
        token=settings.logfire_token,
        send_to_logfire="if-token-present",
        service_name=settings.app_name,
        environment=settings.environment,
    )
    if settings.environment == "dev":
        logfire.instrument_aiohttp_client()

    logging.basicConfig(
        level=logging.INFO if settings.environment == "dev" else logging.WARNING,
        format="[%(asctime)s][%(name)s][%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logfire.LogfireLoggingHandler(),
        ],
    )


async def main() -> None:
    settings = load_settings()
    configure_logging(settings)

    logger = logging.getLogger("Main")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Ingestion mode: {settings.ingest_mode}")

    await DefaultApp(settings).run()


def cli() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("App stopped! Good bye.")
    except Exception:
        logfire.fatal("App crashed", _exc_info=True)
        raise


if __name__ == "__main__":
    cli()
