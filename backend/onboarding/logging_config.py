import logging
import sys

from onboarding.config import settings


def configure_logging() -> None:
    """Configure stdout logging for the whole app.

    Call once at startup (the FastAPI lifespan and the CLI both do).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )