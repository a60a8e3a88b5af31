class MetroRouteError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class InvalidInputError(MetroRouteError):
    def __init__(self, message: str = "Invalid routing input"):
        super().__init__(message, code="INVALID_INPUT")


class NoNearbyStationError(MetroRouteError):
    def __init__(self, message: str = "No station within walking range", side: str | None = None):
        self.side = side
        super().__init__(message, code="NO_NEARBY_STATION")


class NoRouteFoundError(MetroRouteError):
    def __init__(self, message: str = "No route found"):
        super().__init__(message, code="NO_ROUTE_FOUND")


class ProviderUnavailableError(MetroRouteError):
    def __init__(self, message: str = "Travel-time provider unavailable"):
        super().__init__(message, code="PROVIDER_UNAVAILABLE")


class GraphInvariantError(MetroRouteError):
    def __init__(self, message: str):
        super().__init__(message, code="GRAPH_INVARIANT")


class NetworkDataError(MetroRouteError):
    def __init__(self, message: str):
        super().__init__(message, code="NETWORK_DATA")
