# ruff: noqa: PLR2004
import pytest

from ado_rest_client.core.exceptions import HttpStatusError, RequestTimeoutError, TransportError
from ado_rest_client.core.models import ApiResourceLocation, ResourceVersion


### ResourceVersion ###
def test_resource_version_parse() -> None:
    """Test parsing of released and preview versions."""
    cases = {
        "7.1": ResourceVersion(7, 1),
        "5": ResourceVersion(5, 0),
        "7.1-preview": ResourceVersion(7, 1, is_preview=True),
        "7.1-Preview.3": ResourceVersion(7, 1, is_preview=True, revision=3),
    }
    for text, expected in cases.items():
        parsed = ResourceVersion.parse(text)
        if parsed != expected:
            pytest.fail(f"Expected {expected!r} for '{text}', got {parsed!r}")


def test_resource_version_parse_invalid() -> None:
    """Test rejection of malformed versions."""
    for text in ("", "latest", "1.x", "1.0-beta"):
        with pytest.raises(ValueError, match="Invalid resource version"):
            ResourceVersion.parse(text)


def test_resource_version_str() -> None:
    """Test rendering back to the wire format."""
    for text in ("7.1", "7.1-preview", "7.1-preview.2"):
        rendered = str(ResourceVersion.parse(text))
        if rendered != text:
            pytest.fail(f"Expected '{text}', got '{rendered}'")


def test_resource_version_ordering() -> None:
    """Test structural ordering: numbers first, then release over preview, then revision."""
    ordered = ["1.0", "2.0-preview.1", "2.0-preview.2", "2.0", "2.1-preview", "10.0"]
    versions = [ResourceVersion.parse(text) for text in ordered]
    if sorted(reversed(versions)) != versions:
        pytest.fail(f"Unexpected ordering {[str(v) for v in sorted(reversed(versions))]}")


def test_resource_version_released() -> None:
    """Test that 0.0 means nothing was released."""
    if ResourceVersion.parse("0.0").is_released:
        pytest.fail("0.0 should not count as released")
    if not ResourceVersion.parse("4.1").is_released:
        pytest.fail("4.1 should count as released")


### ApiResourceLocation ###
def test_location_from_get_response() -> None:
    """Test creating a location from an OPTIONS response item."""
    location = ApiResourceLocation.from_get_response(
        {
            "id": "0cd358e1-9217-4d94-8269-1c1ee6f93dcf",
            "area": "build",
            "resourceName": "builds",
            "routeTemplate": "{project}/_apis/build/builds/{buildId}",
            "resourceVersion": 7,
            "minVersion": "1.0",
            "maxVersion": "7.1",
            "releasedVersion": "7.0",
        }
    )

    if location.resource_name != "builds" or location.route_template != "{project}/_apis/build/builds/{buildId}":
        pytest.fail(f"Unexpected location {location!r}")
    if (location.resource_version, location.min_version, location.max_version) != (7, "1.0", "7.1"):
        pytest.fail(f"Unexpected versions {location!r}")
    if location.released_version != "7.0":
        pytest.fail(f"Expected released version '7.0', got '{location.released_version}'")


def test_location_defaults() -> None:
    """Test defaults for optional location fields."""
    location = ApiResourceLocation.from_get_response({"id": "x", "routeTemplate": "_apis/x"})
    if (location.resource_version, location.min_version, location.max_version, location.released_version) != (
        1,
        "1.0",
        "1.0",
        "0.0",
    ):
        pytest.fail(f"Unexpected defaults {location!r}")


### Exceptions ###
def test_http_status_error_message() -> None:
    """Test the default message naming the status."""
    error = HttpStatusError(404)
    if str(error) != "Failed request: (404)":
        pytest.fail(f"Unexpected message '{error}'")

    error = HttpStatusError(409, "Conflict detected", type_key="GitRefConflict")
    if str(error) != "Conflict detected" or error.type_key != "GitRefConflict":
        pytest.fail(f"Unexpected error {error!r}")


def test_transport_error_has_no_status() -> None:
    """Test that transport failures never carry a status."""
    for error in (TransportError("boom", "https://x"), RequestTimeoutError("https://x")):
        if error.status_code is not None:
            pytest.fail(f"Expected no status code on {error!r}")
