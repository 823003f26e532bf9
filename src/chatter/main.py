"""Main entry point for the chatter memory CLI."""

import asyncio
import logging
import sys

from .config import Config
from .context.selector import ContextBudgetAllocator
from .interfaces.cli import MemoryCLI
from .memory.manager import MemoryManager
from .memory.store import SQLiteMemoryStore
from .memory.usecase import MemoryUseCase
from .storage.conversations import ConversationLog

logger = logging.getLogger(__name__)


def build_usecase(config: Config) -> MemoryUseCase:
    """Wire the engine against on-disk storage."""
    store = SQLiteMemoryStore(config.paths.database)
    manager = MemoryManager(store, config.memory)
    conversations = ConversationLog(config.paths.conversations)
    allocator = ContextBudgetAllocator(config.context)
    return MemoryUseCase(manager, conversations, allocator)


def cli_main():
    """Entry point for CLI."""
    config = Config.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        usecase = build_usecase(config)
    except OSError as e:
        logger.error("Could not prepare storage under %s: %s", config.paths.data, e)
        sys.exit(1)

    cli = MemoryCLI(usecase, default_model=config.default_model)
    sys.exit(asyncio.run(cli.run(sys.argv[1:])))


if __name__ == "__main__":
    cli_main()
