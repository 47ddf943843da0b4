from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from schoolhub.core.query import CountArgs, FindFirstArgs, FindManyArgs, FindUniqueArgs, Include, Node

Record = dict[str, Any]


class ResourceStore(Protocol):
    async def find_many(self, model: str, args: FindManyArgs) -> list[Record]: ...

    async def find_first(self, model: str, args: FindFirstArgs) -> Record | None: ...

    async def find_unique(self, model: str, args: FindUniqueArgs) -> Record | None: ...

    async def count(self, model: str, args: CountArgs) -> int: ...

    async def create(self, model: str, data: Record, include: Include | None = None) -> Record: ...

    async def update(self, model: str, id: str, data: Record, include: Include | None = None) -> Record: ...

    async def update_many(self, model: str, where: Node, data: Record) -> int: ...

    async def delete(self, model: str, id: str) -> None: ...

    def transaction(self) -> AbstractAsyncContextManager["ResourceStore"]: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
