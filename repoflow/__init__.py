"""repoflow — GitHub repository to source artifact + architecture diagrams."""

__version__ = "0.1.0"
