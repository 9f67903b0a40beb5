"""Explicit catalog reset, at startup or from the command line."""

import sys
from typing import Optional, Sequence

from loguru import logger

from backend.api.config import Settings, get_settings
from backend.shared.exceptions import CatalogException
from .catalog_manager import CatalogManager

RESET_FLAG = "--reset-db"
RESET_VALUES = ("1", "true")


def should_reset(settings: Settings, argv: Optional[Sequence[str]] = None) -> bool:
    """Reset only when RESET_DB is set or --reset-db was passed."""
    argv = sys.argv if argv is None else argv
    flag = (settings.reset_db or "").strip().lower()
    return flag in RESET_VALUES or RESET_FLAG in argv


def reset_on_startup(
    manager: CatalogManager,
    settings: Settings,
    argv: Optional[Sequence[str]] = None,
) -> bool:
    """Run the opt-in startup reset.

    A failed reset is logged and does not stop the service.

    Returns:
        True if the catalog was reset
    """
    if not should_reset(settings, argv):
        logger.info(
            "Skipping DB reset on startup. To reset manually run `catalog-reset-db` "
            f"or start with RESET_DB=1 or {RESET_FLAG}."
        )
        return False

    logger.info("RESET_DB detected: performing DB reset (explicit).")
    try:
        manager.reset()
    except CatalogException as e:
        logger.error(f"DB reset failed: {e.message}")
        return False
    logger.info("DB reset complete.")
    return True


def main() -> int:
    """Entry point for the ``catalog-reset-db`` command."""
    settings = get_settings()
    try:
        CatalogManager().reset()
    except CatalogException as e:
        logger.error(f"DB reset failed: {e.message} {e.details}")
        return 1
    logger.info(f"DB reset finished ({settings.db_path})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
