"""Location discovery and API version negotiation.

Every REST operation is identified by an area and a location id. The server
describes the route template and the supported API version range of each
location; the client fetches those descriptions once per area with an OPTIONS
request and then resolves every call locally.

Key Components:
    VersioningClient: Resolves (area, location id, api version) into a
        negotiated api version and a request URL
    compare_resource_versions: Structural comparator for version strings

Caching:
    Location lookups are cached per client instance and per area. The cache
    stores the in-flight fetch task itself, so concurrent first callers for an
    area share one OPTIONS request. A fetch that fails is evicted, so a later
    call can try again; a successful fetch is kept for the client's lifetime.

Example:
    ```python
    versioning = VersioningClient("https://dev.azure.com/org", rest_client)
    data = await versioning.get_versioning_data(
        "7.1",
        "build",
        "0cd358e1-9217-4d94-8269-1c1ee6f93dcf",
        route_values={"project": "MyProject", "buildId": 42},
        query_params={"propertyFilters": None},
    )
    data.api_version  # "7.1"
    data.request_url  # "MyProject/_apis/build/builds/42"
    ```

Raises:
    LocationNotFoundError: When the area does not expose the location id
    InvalidApiResourceVersionError: When the requested version is outside
        the location's [min_version, max_version] range
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable
from typing import Any

from ado_rest_client.core.contracts import SerializationData
from ado_rest_client.core.exceptions import InvalidApiResourceVersionError, LocationNotFoundError
from ado_rest_client.core.models import ApiResourceLocation, ClientVersioningData, ResourceVersion
from ado_rest_client.core.rest_client import RestClient
from ado_rest_client.utils.routes import get_request_url


def compare_resource_versions(version: str | ResourceVersion, other: str | ResourceVersion) -> int:
    """
    Compare two API versions.

    Compares major, then minor; a released version ranks above a preview of
    the same number, and previews compare by revision.

    Returns:
        A negative number, zero or a positive number as version is lower than,
        equal to or greater than other.
    """
    left = version if isinstance(version, ResourceVersion) else ResourceVersion.parse(version)
    right = other if isinstance(other, ResourceVersion) else ResourceVersion.parse(other)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


class VersioningClient:
    """Resolves locations and negotiates API versions against one server."""

    APIS_RELATIVE_PATH = "_apis"

    def __init__(
        self,
        base_url: str,
        rest_client: RestClient,
        initialization: Awaitable[Any] | None = None,
    ) -> None:
        """
        Initialize the versioning client.

        Args:
            base_url: Collection/organization URL the routes are relative to
            rest_client: REST client used for the OPTIONS requests
            initialization: Optional awaitable to complete before the first
                lookup, e.g. a step that resolves the server URL or credentials
        """
        self.base_url = base_url.rstrip("/")
        self.rest_client = rest_client
        self._initialization = initialization
        self._initialization_future: asyncio.Future | None = None
        self._locations_by_area: dict[str, asyncio.Task] = {}

    @property
    def is_ready(self) -> bool:
        """Whether initialization (if any) has completed successfully."""
        if self._initialization is None:
            return True
        future = self._initialization_future
        return future is not None and future.done() and not future.cancelled() and future.exception() is None

    def resolve_url(self, relative_url: str) -> str:
        """Resolve a URL relative to the base URL."""
        return f"{self.base_url}/{relative_url.lstrip('/')}"

    async def get_versioning_data(
        self,
        api_version: str | None,
        area: str,
        location_id: str,
        route_values: dict[str, Any] | None = None,
        query_params: dict[str, Any] | None = None,
    ) -> ClientVersioningData:
        """
        Resolve a location and the API version to call it with.

        Args:
            api_version: Version requested by the caller, None for the
                server's default
            area: Area the location belongs to
            location_id: Location id
            route_values: Values substituted into the route template; values
                the template does not use are sent as query parameters
            query_params: Query parameters, None values are skipped

        Returns:
            The negotiated api version and the request URL relative to the
            base URL.
        """
        location = await self.begin_get_location(area, location_id)
        if location is None:
            logging.error("versioning: location %s not found in area '%s'", location_id, area)
            raise LocationNotFoundError(area, location_id)

        negotiated = self.negotiate_api_version(location, api_version)
        request_url = get_request_url(
            location.route_template,
            location.area or area,
            location.resource_name,
            route_values,
            query_params,
        )
        logging.debug("versioning: %s/%s resolved to %s (api-version %s)", area, location_id, request_url, negotiated)
        return ClientVersioningData(api_version=negotiated, request_url=request_url)

    async def begin_get_location(self, area: str, location_id: str) -> ApiResourceLocation | None:
        """Look up one location of an area, fetching the area's locations on first use."""
        await self._wait_for_initialization()
        locations = await asyncio.shield(self._get_area_locations(area))
        return locations.get((location_id or "").lower())

    def negotiate_api_version(self, location: ApiResourceLocation, api_version: str | None) -> str:
        """
        Pick the API version to send for a location.

        An explicit preview request is sent as requested. A released version
        newer than what the server has released is negotiated down to the
        released version; if the server never released the location, the
        preview of the requested number is sent. Versions are never
        negotiated up.
        """
        min_version = self._parse(location.min_version, location)
        max_version = self._parse(location.max_version, location)
        released_version = self._parse(location.released_version, location)

        if not api_version:
            if released_version.is_released:
                return str(released_version)
            return str(ResourceVersion(max_version.major, max_version.minor, True, location.resource_version))

        requested = self._parse(api_version, location)
        if requested.numeric < min_version.numeric:
            msg = (
                f"Requested version {api_version} of the '{location.resource_name}' resource is less "
                f"than the minimum version {location.min_version} supported by the server"
            )
            raise InvalidApiResourceVersionError(msg)
        if requested.numeric > max_version.numeric:
            msg = (
                f"Requested version {api_version} of the '{location.resource_name}' resource is greater "
                f"than the latest version {location.max_version} supported by the server"
            )
            raise InvalidApiResourceVersionError(msg)

        if requested.is_preview:
            return str(requested)
        if not released_version.is_released:
            return str(ResourceVersion(requested.major, requested.minor, True, location.resource_version))
        if requested.numeric > released_version.numeric:
            logging.debug("versioning: negotiating %s down to released version %s", api_version, released_version)
            return str(released_version)
        return str(requested)

    ### Location cache
    def _get_area_locations(self, area: str) -> asyncio.Task:
        """Return the memoized fetch task of an area, starting it on first use."""
        key = area.lower()
        task = self._locations_by_area.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_area_locations(area))
            task.add_done_callback(functools.partial(self._evict_failed_fetch, key))
            self._locations_by_area[key] = task
        return task

    def _evict_failed_fetch(self, key: str, task: asyncio.Task) -> None:
        if (task.cancelled() or task.exception() is not None) and self._locations_by_area.get(key) is task:
            logging.debug("versioning: dropping failed location fetch for area '%s'", key)
            del self._locations_by_area[key]

    async def _fetch_area_locations(self, area: str) -> dict[str, ApiResourceLocation]:
        locations = await self._issue_options_request(area)
        logging.debug("versioning: cached %d locations for area '%s'", len(locations), area)
        return {location.id.lower(): location for location in locations}

    async def _issue_options_request(self, area: str) -> list[ApiResourceLocation]:
        """Discover the locations of an area with an OPTIONS request."""
        url = self.resolve_url(f"{self.APIS_RELATIVE_PATH}/{area}")
        logging.info("versioning: fetching locations for area '%s'", area)
        response = await self.rest_client.options(url, serialization_data=SerializationData(response_is_collection=True))

        items = response.result
        if isinstance(items, dict):
            items = items.get("value", [])
        locations = []
        for item in items or []:
            if not isinstance(item, dict) or "id" not in item or "routeTemplate" not in item:
                logging.debug("versioning: skipping malformed location in area '%s': %r", area, item)
                continue
            locations.append(ApiResourceLocation.from_get_response(item))
        return locations

    async def _wait_for_initialization(self) -> None:
        if self._initialization is None:
            return
        if self._initialization_future is None:
            self._initialization_future = asyncio.ensure_future(self._initialization)
        await asyncio.shield(self._initialization_future)

    @staticmethod
    def _parse(version: str, location: ApiResourceLocation) -> ResourceVersion:
        try:
            return ResourceVersion.parse(version)
        except ValueError as e:
            msg = f"Invalid version '{version}' for the '{location.resource_name}' resource"
            raise InvalidApiResourceVersionError(msg) from e
