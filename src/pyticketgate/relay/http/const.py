"""Constants for the HTTP relay server."""

OPEN_DOOR_ENDPOINT = "/open-door"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": "pyticketgate-relay",
}
