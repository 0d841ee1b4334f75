"""Domain layer — pipeline artifacts, stage names, and the run gate.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
