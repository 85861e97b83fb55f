"""Data models for the diagram engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagramKind(str, Enum):
    BUSINESS_FLOW = "businessFlow"
    DATA_FLOW = "dataFlow"

    @property
    def direction(self) -> str:
        """Mermaid flowchart direction: top-down for processes, left-right for data."""
        return "TD" if self is DiagramKind.BUSINESS_FLOW else "LR"

    @property
    def slug(self) -> str:
        """File-name form, e.g. ``business-flow``."""
        return "business-flow" if self is DiagramKind.BUSINESS_FLOW else "data-flow"


# Every diagram the pipeline returns starts with this token.
REQUIRED_KEYWORD = "flowchart"


@dataclass(frozen=True)
class DiagramSpec:
    kind: DiagramKind
    source_text: str
    is_fallback: bool = False


@dataclass(frozen=True)
class DiagramPair:
    """Both diagram kinds, always fully populated (a mix of synthesized and fallback is valid)."""

    business_flow: DiagramSpec
    data_flow: DiagramSpec

    def get(self, kind: DiagramKind) -> DiagramSpec:
        return self.business_flow if kind is DiagramKind.BUSINESS_FLOW else self.data_flow

    def as_dict(self) -> dict[str, str]:
        return {
            DiagramKind.BUSINESS_FLOW.value: self.business_flow.source_text,
            DiagramKind.DATA_FLOW.value: self.data_flow.source_text,
        }
