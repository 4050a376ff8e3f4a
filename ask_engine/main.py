from __future__ import annotations

import asyncio
import logging

from ask_engine.core.logging import configure_logging
from ask_engine.core.settings import get_settings
from ask_engine.dependency_injection import build_chat_orchestrator

settings = get_settings()
configure_logging(settings.effective_log_level)
logger = logging.getLogger(__name__)

RESET_COMMAND = "/reset"


async def main() -> None:
    logger.info(
        "starting ask engine console",
        extra={"app_env": settings.app_env, "protocol": settings.protocol, "api_url": settings.api_url},
    )

    async with build_chat_orchestrator(settings) as orchestrator:
        while True:
            try:
                question = await asyncio.to_thread(input, "> ")
            except EOFError:
                break

            if question.strip() == RESET_COMMAND:
                await orchestrator.reset_chat()
                continue

            task = orchestrator.send_message(question)
            if task is None:
                continue
            exchange = await task
            if exchange.error is not None:
                print(f"error: {exchange.error}")
            elif orchestrator.messages:
                print(orchestrator.messages[-1].text)

    logger.info("ask engine console shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
