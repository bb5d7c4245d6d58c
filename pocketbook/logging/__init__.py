from pocketbook.logging.logger import configure, logger

__all__ = ["configure", "logger"]
