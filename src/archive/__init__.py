# Archive module
# v1.2: Logbook of finalised arrest episodes

from .logbook import (
    Archiver,
    InMemoryLogbook,
)

__all__ = [
    'Archiver',
    'InMemoryLogbook',
]
