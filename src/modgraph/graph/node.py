"""Pydantic model for modules held in the dependency graph."""

from pydantic import BaseModel, Field, model_validator


class ModuleNode(BaseModel):
    """A module and its declared dependencies."""

    identifier: str = Field(..., description="Canonical module identifier (map key)")
    display_name: str = Field(..., description="Identifier with the boundary prefix trimmed")
    dependencies: list[str] = Field(
        default_factory=list,
        description="Sorted, de-duplicated identifiers this module imports",
    )
    is_root: bool = Field(default=False, description="Supplied directly by the caller")
    is_kept: bool = Field(default=False, description="Inside the selected neighborhood")
    is_user_kept: bool = Field(default=False, description="Kept by explicit caller action")
    is_broken: bool = Field(default=False, description="Resolution failed for this module")
    is_foreign: bool = Field(
        default=False, description="Non-source pseudo-module that is never resolved"
    )
    incoming_count: int = Field(
        default=0, description="Number of modules importing this one (recomputed on demand)"
    )

    @model_validator(mode="after")
    def normalize_dependencies(self) -> "ModuleNode":
        """Drop self-imports and duplicates, and sort the dependency list."""
        deps = {d for d in self.dependencies if d != self.identifier}
        self.dependencies = sorted(deps)
        return self

    def __str__(self) -> str:
        flags = ""
        if self.is_user_kept:
            flags += ", user-keep"
        elif self.is_kept:
            flags += ", keep"
        if self.is_root:
            flags += ", root"
        if self.is_broken:
            flags += ", broken"
        if self.is_foreign:
            flags += ", foreign"
        return (
            f"ModuleNode{{{self.display_name}, {len(self.dependencies)} down, "
            f"{self.incoming_count} up{flags}}}"
        )
