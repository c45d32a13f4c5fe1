"""Error types raised across the report and recommendation pipeline."""


class HatchMatchError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(HatchMatchError):
    """Missing identifiers or credentials; raised before any I/O."""

    def __init__(self, message: str, missing_credentials: bool = False) -> None:
        super().__init__(message)
        self.missing_credentials = missing_credentials


class WaterBodyNotFoundError(HatchMatchError):
    """The requested water body id does not exist."""


class OracleError(HatchMatchError):
    """The text-generation service could not be reached or rejected the call."""


class ExtractionError(HatchMatchError):
    """An oracle reply did not contain the JSON the caller asked for."""


class RecommendationError(HatchMatchError):
    """Fly recommendations could not be generated for a water body."""


class NoTripWatersError(HatchMatchError):
    """A trip aggregation was requested without any waters."""


class TripAggregationError(HatchMatchError):
    """Recommendations could not be obtained for any water on the trip."""
