"""Prompts for business-flow and data-flow diagram synthesis."""

from __future__ import annotations

from repoflow.engines.diagrams.models import DiagramKind
from repoflow.engines.ingestion.models import RepositoryIdentity

# How much of the serialized artifact each prompt embeds.
PROMPT_CONTEXT_CHARS = 20_000

BUSINESS_FLOW_CLASSES = ("primaryNode", "secondaryNode", "dataNode", "decisionNode", "userNode")
DATA_FLOW_CLASSES = ("inputNode", "processNode", "storageNode", "outputNode", "validationNode")

ARCHITECT_SYSTEM_PROMPT = """\
You are a senior software architect. You read codebases and produce precise, \
project-specific Mermaid diagrams.

# Guidelines
- Describe the actual code: real component, route and service names, not generic templates.
- Produce clean, valid Mermaid syntax.
- Identify real business processes and data transformations.
"""

_OUTPUT_RULES = """\
# Output format
- Reply with Mermaid code ONLY. The first token of your reply must be `{header}`.
- Do NOT wrap the reply in markdown code fences.
- Do NOT add explanations, descriptions or any text before or after the diagram.
- Do NOT use emojis in node labels.

# Styling
- Do NOT write `classDef` statements and do NOT hard-code any colors \
(no `fill:`, `stroke:` or `style` lines). Colors come from the theme.
- Only assign class names to nodes, after the flowchart structure, e.g. \
`class A,B,C {example_class}`.
- Available class names: {classes}.
- Check that the syntax is valid before responding.
"""

BUSINESS_FLOW_TEMPLATE = """\
# Task
Analyze the project code below and produce a Mermaid flowchart of the overall \
business flow: every user journey and business process the application supports.

# Project
- Repository: {full_name}

# Cover
## Users and authentication
- User roles (admin, user, guest, ...), registration and login flows
- Authentication states, permissions, session handling

## Core business processes
- Main workflows and CRUD operations
- Uploads, processing and generation steps
- Search, filtering and retrieval
- External service integrations, background and async jobs

## Decision points and error handling
- Validation steps and error paths, success/failure branches
- Retries and fallbacks

# Shapes
- Rounded rectangles for processes, diamonds for decisions, cylinders for storage.

{output_rules}
# Project code
{context}"""

DATA_FLOW_TEMPLATE = """\
# Task
Analyze the project code below and produce a Mermaid flowchart of how data moves \
through the whole system: sources → processing → storage → output.

# Project
- Repository: {full_name}

# Cover
## Sources and input
- Forms, uploads, API endpoints receiving data, external integrations
- Database reads, environment variables and configuration

## Processing and transformation
- Validation and sanitization, business logic, parsing and formatting
- Background jobs, queues, caching

## Storage and persistence
- Database writes, file storage, session/temporary storage, external sync

## Output and distribution
- API responses, UI updates, generated files, notifications, streaming

# Shapes
- Rectangles [Process] for processing steps, cylinders [(Database)] for storage, \
diamonds {{Decision}} for validation and routing.

{output_rules}
# Project code
{context}"""


def _output_rules(kind: DiagramKind, classes: tuple[str, ...]) -> str:
    return _OUTPUT_RULES.format(
        header=f"flowchart {kind.direction}",
        example_class=classes[0],
        classes=", ".join(classes),
    )


def build_prompt(kind: DiagramKind, artifact_text: str, identity: RepositoryIdentity) -> str:
    """Return the full prompt for *kind*, grounded on the head of *artifact_text*."""
    context = artifact_text[:PROMPT_CONTEXT_CHARS]
    if kind is DiagramKind.BUSINESS_FLOW:
        template, classes = BUSINESS_FLOW_TEMPLATE, BUSINESS_FLOW_CLASSES
    else:
        template, classes = DATA_FLOW_TEMPLATE, DATA_FLOW_CLASSES
    return template.format(
        full_name=identity.full_name,
        output_rules=_output_rules(kind, classes),
        context=context,
    )
