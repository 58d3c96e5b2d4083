from enum import Enum


class LoggerLevel(str, Enum):
    debug = "DEBUG"
    info = "INFO"
    warning = "WARNING"
    error = "ERROR"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def from_env(cls, raw_value: str | None) -> "LoggerLevel":
        """
        Resolve a level name such as ``"warning"``; unknown values mean INFO.
        """

        if not raw_value:
            return cls.info
        try:
            return cls(raw_value.strip().upper())
        except ValueError:
            return cls.info


_RANKS = {
    LoggerLevel.debug: 10,
    LoggerLevel.info: 20,
    LoggerLevel.warning: 30,
    LoggerLevel.error: 40,
}
