# justicebot/__init__.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - PACKAGE ROOT
# ============================================================================
# Legal journey lookup + one-shot guide purchases with gated downloads
# ============================================================================

__version__ = "1.0.0"

from justicebot.logging_config import configure_logging

configure_logging()
