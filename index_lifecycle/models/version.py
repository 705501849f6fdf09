import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel

FIRST_TYPELESS_ES_MAJOR = 6


class Flavor(str, Enum):
    ELASTICSEARCH = "elasticsearch"
    OPENSEARCH = "opensearch"

    @property
    def shorthand(self) -> str:
        """Return a shorthand representation of the flavor"""
        if self == Flavor.ELASTICSEARCH:
            return "es"
        elif self == Flavor.OPENSEARCH:
            return "os"
        return ""


class EngineGeneration(str, Enum):
    """
    The two wire protocol generations this package can speak. They differ in how field types and
    index modes are spelled in mappings: the legacy generation (Elasticsearch 2.x) only knows `string`
    fields with `analyzed`/`not_analyzed` index modes, the modern one (Elasticsearch 5.x) has
    `text`/`keyword` fields with boolean index flags. Both still have mapping types.
    """
    LEGACY = "legacy"
    MODERN = "modern"


class UnsupportedEngineVersionError(ValueError):
    def __init__(self, version: 'Version'):
        super().__init__(f"{version} has no mapping types, only Elasticsearch 2.x and 5.x clusters are supported")
        self.version = version


class Version(BaseModel):
    flavor: Flavor
    major: int = 0
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        """Convert version to string format"""
        return f"{self.flavor.value} {self.major}.{self.minor}.{self.patch}"

    @classmethod
    def from_string(cls, version_str: str) -> 'Version':
        """Parse a version string (e.g. `ES_5.6`, `elasticsearch 2.4.1`, `OS_2.11`) into a Version object"""
        if not version_str:
            raise ValueError("Version string cannot be empty")

        version_str = version_str.lower().strip()

        flavor_match = None
        remaining_str = version_str

        # Try each flavor, starting with the longest shorthand
        for flavor in sorted(Flavor, key=lambda f: len(f.shorthand), reverse=True):
            if version_str.startswith(flavor.value):
                flavor_match = flavor
                remaining_str = version_str[len(flavor.value):].strip()
                break
            elif version_str.startswith(flavor.shorthand):
                flavor_match = flavor
                remaining_str = version_str[len(flavor.shorthand):].strip()
                break

        if not flavor_match:
            raise ValueError(f"Unable to determine flavor from '{version_str}'")

        remaining_str = re.sub(r'^[_v ]+', '', remaining_str)
        version_parts = re.split(r'[\\._-]', remaining_str)

        try:
            major = int(version_parts[0])
            minor = 0 if len(version_parts) <= 1 or version_parts[1] == 'x' else int(version_parts[1])
            patch = 0 if len(version_parts) <= 2 or version_parts[2] == 'x' else int(version_parts[2])

            return cls(flavor=flavor_match, major=major, minor=minor, patch=patch)
        except Exception as e:
            raise ValueError(f"Unable to parse version numbers from '{version_str}': {str(e)}")


def detect_generation(version: Optional[Version | str]) -> EngineGeneration:
    """
    The single place that decides which protocol generation a cluster speaks. Everything that emits
    version-sensitive wire values must go through this function.

    Engines without mapping types (Elasticsearch 6 and later, every OpenSearch release) reject the typed
    mappings, `_all` settings and `/index/type/id` document paths this package sends, so they raise
    UnsupportedEngineVersionError.
    """
    if version is None:
        return EngineGeneration.MODERN
    if isinstance(version, str):
        version = Version.from_string(version)
    if version.flavor == Flavor.OPENSEARCH or version.major >= FIRST_TYPELESS_ES_MAJOR:
        raise UnsupportedEngineVersionError(version)
    if version.major < 5:
        return EngineGeneration.LEGACY
    return EngineGeneration.MODERN
