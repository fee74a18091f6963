"""Rich-based logging configuration for agentboard.

Provides colored console output for local development with:
- Color-coded log levels
- Component prefixes with distinct colors
- Auto-detection of TTY for production safety

Logs always go to stderr: stdout carries the MCP stdio transport.
"""

from __future__ import annotations

import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

AGENTBOARD_THEME = Theme({
    "logging.level.debug": "blue",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "red bold",
    "logging.level.critical": "red bold reverse",
})

# Component color mapping for log prefixes
COMPONENT_STYLES = {
    "MCP": "cyan bold",
    "TASK": "cyan",
    "INDEX": "magenta bold",
    "SEARCH": "yellow bold",
    "STORE": "blue bold",
    "EMBED": "green bold",
}


def is_tty() -> bool:
    """Check if stderr is a TTY (interactive terminal)."""
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def should_use_rich() -> bool:
    """Determine if Rich logging should be used.

    Returns True if:
    - AGENTBOARD_RICH_LOGS=1 is set (force enable)
    - Running in a TTY and AGENTBOARD_RICH_LOGS is not explicitly disabled
    """
    env_value = os.environ.get("AGENTBOARD_RICH_LOGS", "").lower()

    if env_value in ("1", "true", "yes"):
        return True
    if env_value in ("0", "false", "no"):
        return False

    return is_tty()


def configure_logging(
    level: int | str = logging.INFO,
    force_rich: bool | None = None,
) -> None:
    """Configure logging with Rich console handler.

    Args:
        level: Logging level (default: INFO)
        force_rich: Override auto-detection. None = auto-detect.
    """
    use_rich = force_rich if force_rich is not None else should_use_rich()

    root = logging.getLogger()
    root.handlers.clear()

    if use_rich:
        console = Console(theme=AGENTBOARD_THEME, stderr=True)

        handler: logging.Handler = RichHandler(
            console=console,
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            markup=True,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # Silence noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("chromadb").setLevel(logging.WARNING)


def format_component(component: str) -> str:
    """Format a component name with Rich markup.

    Usage in log messages:
        logger.info(f"{format_component('TASK')} Created agent task")
    """
    style = COMPONENT_STYLES.get(component.upper(), "white")
    return f"[{style}][{component}][/{style}]"
