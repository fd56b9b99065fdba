"""Version information of the command line tool."""

from dataclasses import dataclass

from opct.types import PLUGINS_IMAGE, SONOBUOY_VERSION

PROJECT_NAME = "openshift-provider-cert"


@dataclass(frozen=True)
class VersionContext:
    """Identifies a build of the tool."""

    name: str = PROJECT_NAME
    version: str = "unknown"
    commit: str = "unknown"

    def __str__(self) -> str:
        return f"OPCT CLI: {self.version}+{self.commit}"

    def plugins_string(self) -> str:
        """Describe the plugins image bundled with this build."""
        return f"OPCT Plugins: {PLUGINS_IMAGE}"


VERSION = VersionContext()


def version_lines() -> list[str]:
    """Lines printed by the version command."""
    return [
        str(VERSION),
        VERSION.plugins_string(),
        f"Sonobuoy: {SONOBUOY_VERSION}",
    ]