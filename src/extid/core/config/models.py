"""
Configuration data models for extid.

These models define the structure of .extid.json and
~/.config/extid/config.json files, with validation via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field


class WidthPolicy(BaseModel):
    """
    Suffix widths per level.

    Chosen once per deployment. Changing a width after identifiers exist
    leaves siblings of mixed width, which the scanner refuses to rank.
    """

    office_width: int = Field(
        default=2, ge=1, le=9, description="Offices directly under the root office"
    )
    taluk_width: int = Field(
        default=3, ge=1, le=9, description="Offices under a non-root office"
    )
    center_width: int = Field(default=2, ge=1, le=9, description="Centers under an office")
    group_width: int = Field(default=2, ge=1, le=9, description="Groups under a center or group")
    client_width: int = Field(default=4, ge=1, le=9, description="Clients in a group")

    model_config = ConfigDict(frozen=True)


class ExtIdConfig(BaseModel):
    """
    Main extid configuration model.

    Loaded from:
    1. Hardcoded defaults
    2. User config (~/.config/extid/config.json)
    3. Project config (.extid.json)
    4. Environment variables (EXTID_*)

    Example:
        >>> config = ExtIdConfig(lock_timeout_seconds=2.0)
        >>> config.widths.client_width
        4
    """

    root_office_id: int = Field(
        default=1,
        ge=1,
        description="Id of the head office; it never receives an identifier",
    )
    lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a busy allocation scope before failing",
    )
    strict_width: bool = Field(
        default=False,
        description="Fail instead of ignoring sibling identifiers of unexpected shape",
    )
    db_path: str = Field(
        default=".extid/hierarchy.db",
        description="SQLite database used by the command line",
    )
    widths: WidthPolicy = Field(default_factory=WidthPolicy)

    model_config = ConfigDict(extra="ignore")
