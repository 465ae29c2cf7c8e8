import logging
from typing import Any, Optional

from pydantic import BaseModel

from slatelog.config.config import get_config, log_level
from slatelog.utils.logging_setup import configure_logging


class EditorResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    take_id: Optional[str] = None
    content: Optional[Any] = None

    class Config:
        extra = "allow"


def setup_logger(name: str) -> logging.Logger:
    config = get_config()
    configure_logging(
        log_file=config["log_file"],
        level=log_level(config),
        enable_console=bool(config.get("log_console")),
    )
    return logging.getLogger(name)
