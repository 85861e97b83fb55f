"""Diagram engine — LLM-synthesized Mermaid flowcharts with template fallback."""
