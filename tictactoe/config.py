# tictactoe/config.py
from dataclasses import dataclass
import logging
import os

from .rules import Mark

logger = logging.getLogger(__name__)

ENV_PREFIX = "TICTACTOE_"


def _env_int(name, default):
    raw = os.environ.get(ENV_PREFIX + name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s%s=%r, not an integer", ENV_PREFIX, name, raw)
        return default


@dataclass
class GameConfig:
    thinking_delay_ms: int = 1000   # pause before the computer plays
    computer_mark: Mark = Mark.O
    store_host: str = "127.0.0.1"
    store_port: int = 9999
    player_id: str = ""             # empty means generate one per run
    log_level: str = "INFO"

    @staticmethod
    def from_env():
        cfg = GameConfig()
        cfg.thinking_delay_ms = max(0, _env_int("THINKING_DELAY_MS", cfg.thinking_delay_ms))
        cfg.store_port = _env_int("STORE_PORT", cfg.store_port)
        cfg.store_host = os.environ.get(ENV_PREFIX + "STORE_HOST", cfg.store_host)
        cfg.player_id = os.environ.get(ENV_PREFIX + "PLAYER_ID", cfg.player_id)
        cfg.log_level = os.environ.get(ENV_PREFIX + "LOG_LEVEL", cfg.log_level).upper()

        mark = os.environ.get(ENV_PREFIX + "COMPUTER_MARK")
        if mark:
            try:
                cfg.computer_mark = Mark(mark.upper())
            except ValueError:
                logger.warning("ignoring %sCOMPUTER_MARK=%r, expected X or O", ENV_PREFIX, mark)
        return cfg
