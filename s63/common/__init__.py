# Common utilities
from s63.common.config import Config as Config
from s63.common.logging_utils import setup_logger as setup_logger

__all__ = ["Config", "setup_logger"]
