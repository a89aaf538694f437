import hashlib
import logging
from typing import List, Optional

from sortedcontainers import SortedDict

log = logging.getLogger(__name__)

VNODE_SEPARATOR = "#"


def ring_hash(value: str) -> int:
    """Return the ring position of ``value`` (MD5, read as an unsigned int)."""
    return int(hashlib.md5(value.encode("utf-8")).hexdigest(), 16)


def virtual_node_id(server: str, index: int) -> str:
    return f"{server}{VNODE_SEPARATOR}{index}"


class HashRing:
    """Consistent-hashing ring mapping keys onto servers.

    Each server occupies ``virtual_nodes`` positions on the ring. A key is
    owned by the first position at or after its own hash, wrapping around
    to the smallest position.

    When two virtual nodes hash to the same position the later insertion
    wins and the earlier server loses that position. Removing a server only
    erases positions it still owns.
    """

    def __init__(self, virtual_nodes: int = 100):
        if isinstance(virtual_nodes, bool) or not isinstance(virtual_nodes, int):
            raise ValueError(f"virtual_nodes must be an integer, got {virtual_nodes!r}")
        if virtual_nodes <= 0:
            raise ValueError(f"virtual_nodes must be positive, got {virtual_nodes}")
        self._virtual_nodes = virtual_nodes
        self._ring = SortedDict()  # position -> server

    @property
    def virtual_nodes(self) -> int:
        return self._virtual_nodes

    def _positions(self, server):
        for i in range(self._virtual_nodes):
            yield ring_hash(virtual_node_id(server, i))

    def add_server(self, server: str) -> None:
        for position in self._positions(server):
            self._ring[position] = server
        log.debug("added server=%s vnodes=%d", server, self._virtual_nodes)

    def remove_server(self, server: str) -> None:
        removed = 0
        for position in self._positions(server):
            if self._ring.get(position) == server:
                del self._ring[position]
                removed += 1
        if removed:
            log.debug("removed server=%s positions=%d", server, removed)
        else:
            log.debug("remove of unknown server=%s ignored", server)

    def get_server(self, key: str) -> Optional[str]:
        """Return the server owning ``key``, or None if the ring is empty."""
        if not self._ring:
            return None

        idx = self._ring.bisect_left(ring_hash(key))
        if idx == len(self._ring):
            idx = 0
        return self._ring.peekitem(idx)[1]

    def get_all_servers(self) -> List[str]:
        return sorted(set(self._ring.values()))

    def copy(self) -> "HashRing":
        clone = HashRing(self._virtual_nodes)
        clone._ring = self._ring.copy()
        return clone

    def __len__(self):
        return len(self._ring)

    def __contains__(self, server):
        return any(self._ring.get(position) == server for position in self._positions(server))
