"""Infrastructure layer — processes, downloads, filesystem.

This layer depends on stdlib and third-party libs (httpx).
It must never import from services, commands, or output.
The service layer bridges between domain models and infrastructure.
"""
