"""Configuration models for exported setups and presets.

This module defines the Pydantic models representing a saved pakky
configuration (queue plus scripts) and a preset.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from pakky.models.script import ScriptStep


class PackageEntry(BaseModel):
    """Package listed with extra details in a configuration.

    Attributes:
        name: Package name.
        description: Optional description.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, description="Package name")]
    description: Annotated[str | None, Field(description="Package description")] = None


# Packages may be listed as plain names or as detailed entries
PackageListItem = str | PackageEntry


class HomebrewPackages(BaseModel):
    """Homebrew section of a configuration or preset.

    Attributes:
        formulae: Command-line packages.
        casks: Application bundles.
    """

    model_config = ConfigDict(extra="forbid")

    formulae: Annotated[
        list[PackageListItem],
        Field(default_factory=list, description="Formulae to install"),
    ]
    casks: Annotated[
        list[PackageListItem],
        Field(default_factory=list, description="Casks to install"),
    ]

    @property
    def package_count(self) -> int:
        """Total number of packages listed."""
        return len(self.formulae) + len(self.casks)


class ConfigMetadata(BaseModel):
    """Bookkeeping written when a configuration is exported."""

    model_config = ConfigDict(extra="forbid")

    created_at: datetime | None = None
    updated_at: datetime | None = None
    pakky_version: str | None = None
    exported_from: str | None = None


class PakkyConfig(BaseModel):
    """Saved configuration that can be shared and re-imported.

    Attributes:
        name: Configuration name.
        version: Configuration version string.
        author: Optional author.
        description: Optional description.
        tags: Free-form tags.
        homebrew: Packages to queue.
        scripts: Post-install steps.
        metadata: Export bookkeeping.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, description="Configuration name")]
    version: Annotated[str, Field(description="Configuration version")] = "1.0.0"
    author: str | None = None
    description: str | None = None
    tags: Annotated[list[str], Field(default_factory=list)]
    homebrew: Annotated[HomebrewPackages, Field(default_factory=HomebrewPackages)]
    scripts: Annotated[list[ScriptStep], Field(default_factory=list)]
    metadata: ConfigMetadata | None = None


class Preset(BaseModel):
    """Curated package selection for quick setup.

    Attributes:
        id: Preset identifier (defaults to the file stem).
        name: Display name.
        description: What the preset is for.
        homebrew: Packages to queue.
        scripts: Optional post-install steps.
    """

    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    name: Annotated[str, Field(min_length=1)]
    description: str = ""
    homebrew: Annotated[HomebrewPackages, Field(default_factory=HomebrewPackages)]
    scripts: Annotated[list[ScriptStep], Field(default_factory=list)]
