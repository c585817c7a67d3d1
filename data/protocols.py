"""
Data Layer Protocol Definitions

This module defines the typing.Protocol interface for the remote data
gateway. Services receive a gateway through their constructor, so they can
run against the hosted backend or against an in-memory test double.

Protocols defined:
- DataGateway: table queries and writes, remote procedure calls, object storage
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from data.requests import Filter, TableQuery

Payload = Union[Dict[str, Any], List[Dict[str, Any]]]


class DataGateway(Protocol):
    """Protocol for the backend's table, RPC and storage primitives.

    Every operation may raise TransientNetworkError, AuthExpiredError,
    ConflictError or ServerError. No operation retries.
    """

    async def query(self, request: TableQuery) -> List[Dict[str, Any]]:
        """Run a read and return the matching rows.

        Args:
            request: Table, projection, filters, ordering and range.

        Returns:
            The rows as dictionaries, in the order the backend returned them.
        """
        ...

    async def call(self, procedure: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a remote procedure.

        Args:
            procedure: The procedure name.
            params: Named arguments.

        Returns:
            The decoded result, or None for procedures that return nothing.
        """
        ...

    async def insert(self, table: str, payload: Payload, returning: bool = False,
                     select: str = "*") -> List[Dict[str, Any]]:
        """Insert one or more rows; returns the stored rows when ``returning`` is set."""
        ...

    async def upsert(self, table: str, payload: Payload, on_conflict: str) -> List[Dict[str, Any]]:
        """Insert rows, merging into existing rows that collide on ``on_conflict``."""
        ...

    async def update(self, table: str, values: Dict[str, Any], filters: Sequence[Filter],
                     returning: bool = False) -> List[Dict[str, Any]]:
        """Update the rows matching ``filters``."""
        ...

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        """Delete the rows matching ``filters``."""
        ...

    async def upload_object(self, bucket: str, path: str, data: bytes,
                            content_type: str, upsert: bool = False) -> str:
        """Store an object and return its public URL."""
        ...

    def public_url(self, bucket: str, path: str) -> str:
        """Return the public URL of an object."""
        ...
