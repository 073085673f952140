class ChargePlannerError(Exception):
    """Base exception for charging plan errors."""


class ExternalServiceError(ChargePlannerError):
    """Raised when an upstream API call fails or times out."""


class MissingCredentialError(ExternalServiceError):
    """Raised when a routing provider requires an API key that is not configured."""


class NoRouteFoundError(ChargePlannerError):
    """Raised when a drivable route cannot be generated."""


class NoViableStationsError(ChargePlannerError):
    """Raised when no charging station survives filtering or scoring."""


class InvalidStationDataError(ChargePlannerError):
    """Raised when imported station records cannot be normalized."""
