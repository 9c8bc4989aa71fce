"""Core data models for location discovery and version negotiation.

This module defines the plumbing layer's own model. The resource contracts of
individual API areas (builds, git, work items, ...) are plain JSON shaped by
contract metadata and are not modelled here.

Classes:
    ResourceVersion: Parsed "major.minor[-preview[.N]]" API version
    ApiResourceLocation: One server-exposed route discovered via OPTIONS
    ClientVersioningData: Negotiated API version plus resolved request URL
    RestResponse: Status code, deserialized result and headers of a call

Example:
    ```python
    from ado_rest_client.core.models import ApiResourceLocation, ResourceVersion

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

    ResourceVersion.parse("7.1-preview.7") < ResourceVersion.parse("7.1")  # True
    ```
"""

import functools
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class ResourceVersion:
    """
    A REST API version as it appears in the api-version header.

    Ordering is structural: major, then minor, then a released version ranks
    above a preview of the same number, then the preview revision.

    Attributes:
        major: Major version number
        minor: Minor version number
        is_preview: Whether the version carries a -preview suffix
        revision: Preview revision (the N in -preview.N), if given
    """

    major: int
    minor: int
    is_preview: bool = False
    revision: int | None = None

    PATTERN: ClassVar[re.Pattern] = re.compile(
        r"^\s*(\d+)(?:\.(\d+))?(?:-(preview)(?:\.(\d+))?)?\s*$",
        re.IGNORECASE,
    )

    @classmethod
    def parse(cls, value: str) -> "ResourceVersion":
        """Parse a version string, raising ValueError when it is malformed."""
        match = cls.PATTERN.match(value or "")
        if not match:
            msg = f"Invalid resource version: {value!r}"
            raise ValueError(msg)
        major, minor, preview, revision = match.groups()
        return cls(
            major=int(major),
            minor=int(minor or 0),
            is_preview=preview is not None,
            revision=int(revision) if revision is not None else None,
        )

    @property
    def numeric(self) -> tuple[int, int]:
        """The (major, minor) pair, ignoring the preview suffix."""
        return (self.major, self.minor)

    @property
    def is_released(self) -> bool:
        """A location reports 0.0 as released version when nothing was released yet."""
        return self.numeric != (0, 0)

    def _key(self) -> tuple[int, int, int, int]:
        return (self.major, self.minor, 0 if self.is_preview else 1, self.revision or 0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "ResourceVersion") -> bool:
        if not isinstance(other, ResourceVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        """Render the version in its wire format."""
        version = f"{self.major}.{self.minor}"
        if self.is_preview:
            version += "-preview"
            if self.revision is not None:
                version += f".{self.revision}"
        return version


@dataclass(frozen=True)
class ApiResourceLocation:
    """
    Represents one route exposed by the server for an area.

    Attributes:
        id: Stable location identifier (GUID)
        area: Area the location belongs to
        resource_name: Name of the resource
        route_template: Route with {placeholders}, relative to the collection URL
        resource_version: Current preview revision of the resource
        min_version: Oldest API version the route accepts
        max_version: Newest API version the route accepts
        released_version: Newest released (non-preview) API version, "0.0" if none
    """

    id: str
    area: str
    resource_name: str
    route_template: str
    resource_version: int = 1
    min_version: str = "1.0"
    max_version: str = "1.0"
    released_version: str = "0.0"

    @classmethod
    def from_get_response(cls, data: dict[str, Any]) -> "ApiResourceLocation":
        """Creates an ApiResourceLocation instance from an OPTIONS response item."""
        return cls(
            id=data["id"],
            area=data.get("area", ""),
            resource_name=data.get("resourceName", ""),
            route_template=data["routeTemplate"],
            resource_version=int(data.get("resourceVersion") or 1),
            min_version=str(data.get("minVersion") or "1.0"),
            max_version=str(data.get("maxVersion") or "1.0"),
            released_version=str(data.get("releasedVersion") or "0.0"),
        )


@dataclass(frozen=True)
class ClientVersioningData:
    """
    Answer to "how do I call location X at version Y".

    Attributes:
        api_version: Version string to send in the Accept header
        request_url: Route resolved relative URL including the query string
    """

    api_version: str | None
    request_url: str


@dataclass
class RestResponse:
    """Result of a successful REST call."""

    status_code: int
    result: Any = None
    headers: dict[str, str] = field(default_factory=dict)
