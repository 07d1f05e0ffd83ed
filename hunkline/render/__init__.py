"""Status view rendering for hunkline.

This package provides the render model with:
- expansion: ExpansionState, FileExpansion, SectionExpansion, ExpansionStore, file_key
- model: RowKind, LineRef, Row, RenderResult, render_status, resolve,
         selection_from_rows
"""

# Expansion state
from hunkline.render.expansion import (
    ExpansionState,
    FileExpansion,
    SectionExpansion,
    ExpansionStore,
    file_key,
)

# Render model
from hunkline.render.model import (
    CLEAN_TREE_NOTICE,
    RowKind,
    LineRef,
    Row,
    RenderResult,
    render_status,
    resolve,
    selection_from_rows,
)


__all__ = [
    # Expansion
    "ExpansionState",
    "FileExpansion",
    "SectionExpansion",
    "ExpansionStore",
    "file_key",
    # Model
    "CLEAN_TREE_NOTICE",
    "RowKind",
    "LineRef",
    "Row",
    "RenderResult",
    "render_status",
    "resolve",
    "selection_from_rows",
]
