from __future__ import annotations


class ConfigurationError(ValueError):
    """
    Raised before a run starts when the deal configuration is unusable.
    Carries the offending field and a human readable reason.
    """

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")
