"""Template diagrams used whenever synthesis fails. Pure and deterministic."""

from __future__ import annotations

from repoflow.engines.diagrams.models import DiagramKind, DiagramSpec
from repoflow.engines.ingestion.models import RepositoryIdentity

BUSINESS_FLOW_FALLBACK = """\
flowchart TD
    subgraph "{label} - Business Flow"
        User[User Access]
        Auth[Authentication]
        Dashboard[Dashboard]
        Features[Core Features]
        Data[Data Operations]

        User --> Auth
        Auth -->|Success| Dashboard
        Auth -->|Failed| User
        Dashboard --> Features
        Features --> Data
        Data --> Dashboard
    end

    class User userNode
    class Auth primaryNode
    class Dashboard,Features secondaryNode
    class Data dataNode"""

DATA_FLOW_FALLBACK = """\
flowchart LR
    subgraph "{label} - Data Flow"
        Input[User Input]
        Process[Data Processing]
        Validate{{Validation}}
        Store[(Database Storage)]
        Output[System Response]

        Input --> Process
        Process --> Validate
        Validate --> Store
        Store --> Output
        Output --> Input
    end

    class Input inputNode
    class Process processNode
    class Validate validationNode
    class Store storageNode
    class Output outputNode"""


def _label(identity: RepositoryIdentity) -> str:
    # The name sits inside a double-quoted subgraph title.
    return identity.name.replace('"', "'")


def fallback_source(identity: RepositoryIdentity, kind: DiagramKind) -> str:
    template = BUSINESS_FLOW_FALLBACK if kind is DiagramKind.BUSINESS_FLOW else DATA_FLOW_FALLBACK
    return template.format(label=_label(identity))


def fallback_diagram(identity: RepositoryIdentity, kind: DiagramKind) -> DiagramSpec:
    """Return the fixed-topology diagram for *kind* with the repo name in its label."""
    return DiagramSpec(kind=kind, source_text=fallback_source(identity, kind), is_fallback=True)
