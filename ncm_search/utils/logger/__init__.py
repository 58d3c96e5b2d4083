from ncm_search.utils.logger.logger import Logger, logger

__all__ = ["Logger", "logger"]
