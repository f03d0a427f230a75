"""
ConfigDocument — the editor's user configuration (config.toml).

Sections mirror what the editor reads at startup. Every section allows
extra keys so a document written by a newer editor survives a
load/dump round trip unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ToolchainSection(BaseModel):
    """Paths the editor hands to the assembler/linker/runner."""

    model_config = ConfigDict(extra="allow")

    jwasm_path: str = "jwasm"
    linker_path: str = "i686-w64-mingw32-ld"
    wine_path: str = "wine"
    irvine_lib_path: str = "/usr/local/lib/irvine"
    irvine_inc_path: str = "/usr/local/include/irvine"


class EditorSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    tab_size: int = 4
    insert_spaces: bool = True
    auto_indent: bool = True
    show_line_numbers: bool = True
    autosave: bool = True
    autosave_interval_secs: int = 30


class LayoutSection(BaseModel):
    """Panel sizes, in terminal cells."""

    model_config = ConfigDict(extra="allow")

    file_tree_width: int = 22
    output_height: int = 16
    file_tree_min_width: int = 15
    file_tree_max_width: int = 50
    output_min_height: int = 5
    output_max_height: int = 40


class ConfigDocument(BaseModel):
    """The whole config.toml document."""

    model_config = ConfigDict(extra="allow")

    theme_name: str = "gruvbox"
    toolchain: ToolchainSection = Field(default_factory=ToolchainSection)
    editor: EditorSection = Field(default_factory=EditorSection)
    layout: LayoutSection = Field(default_factory=LayoutSection)

    def to_toml_dict(self) -> dict:
        """Plain dict in TOML order: top-level scalars before tables."""
        data = self.model_dump(mode="json")
        tables = {k: v for k, v in data.items() if isinstance(v, dict)}
        scalars = {k: v for k, v in data.items() if not isinstance(v, dict)}
        return {**scalars, **tables}
