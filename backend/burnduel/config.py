"""Конфигурация приложения."""
import os
from functools import lru_cache


@lru_cache
def get_config():
    return type("Config", (), {
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "log_level": os.environ.get("LOG_LEVEL", "INFO").upper(),
        "starting_balance": int(os.environ.get("STARTING_BALANCE", "1000")),
        # Паузы только для анимаций на клиенте, на логику не влияют
        "round_pause_sec": float(os.environ.get("ROUND_PAUSE_SEC", "2.0")),
        "match_end_pause_sec": float(os.environ.get("MATCH_END_PAUSE_SEC", "2.0")),
        "rematch_window_sec": float(os.environ.get("REMATCH_WINDOW_SEC", "30.0")),
        # Медленный сокет не должен держать всю игру
        "send_timeout_sec": float(os.environ.get("SEND_TIMEOUT_SEC", "5.0")),
    })()
