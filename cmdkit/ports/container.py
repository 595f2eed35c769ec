from typing import Protocol


class ContainerPort(Protocol):
    def __getitem__(self, key: str) -> object: ...
