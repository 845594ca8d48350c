# Error kinds surfaced to the user. Every one is recoverable; the message is shown as-is.


class WeatherAppError(Exception):
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


# Raised by LocationStore while validating a label; turned into a SaveResult.
class LabelError(WeatherAppError):
    pass


class EmptyLabel(LabelError):
    default_message = "City name is empty."


class CapacityExceeded(LabelError):
    default_message = "You already saved 5 cities."


class DuplicateLabel(LabelError):
    default_message = "City already saved."


class EmptyQuery(WeatherAppError):
    default_message = "Please enter a city name."


# All geocoding candidates exhausted.
class NotFound(WeatherAppError):
    default_message = "City not found. Try another name."


# Network failure, non-success status or malformed weather payload.
class UpstreamError(WeatherAppError):
    default_message = "Failed to fetch weather."
