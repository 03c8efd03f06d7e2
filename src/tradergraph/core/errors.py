from typing import List, Optional


class TraderGraphError(Exception):
    pass


class InvalidInputError(TraderGraphError):
    def __init__(self, message: str, supported_chains: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.supported_chains = supported_chains


class NoUpstreamActivityError(TraderGraphError):
    pass


class DataSourceError(TraderGraphError):
    pass


class RateLimitError(DataSourceError):
    pass
