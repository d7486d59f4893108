"""Repository layer for the Thumbcraft backend.

Provides data access abstractions for domain entities.
"""

from thumbcraft.repositories.generation_job import GenerationJobRepository

__all__ = [
    "GenerationJobRepository",
]
