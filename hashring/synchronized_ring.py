import logging
import threading
from typing import List, Optional

from .hash_ring import HashRing

log = logging.getLogger(__name__)


class SynchronizedHashRing:
    """Copy-on-write HashRing that can be shared between threads.

    Writers are serialized and publish a fresh ring after each mutation.
    Readers never take the lock and always see one complete snapshot.
    """

    def __init__(self, virtual_nodes: int = 100):
        self._ring = HashRing(virtual_nodes)
        self._write_lock = threading.Lock()

    @property
    def virtual_nodes(self) -> int:
        return self._ring.virtual_nodes

    def snapshot(self) -> HashRing:
        """Return the published ring. Callers must not mutate it."""
        return self._ring

    def add_server(self, server: str) -> None:
        with self._write_lock:
            ring = self._ring.copy()
            ring.add_server(server)
            self._ring = ring

    def remove_server(self, server: str) -> None:
        with self._write_lock:
            if server not in self._ring:
                log.debug("remove of unknown server=%s ignored", server)
                return
            ring = self._ring.copy()
            ring.remove_server(server)
            self._ring = ring

    def get_server(self, key: str) -> Optional[str]:
        return self._ring.get_server(key)

    def get_all_servers(self) -> List[str]:
        return self._ring.get_all_servers()

    def __len__(self):
        return len(self._ring)

    def __contains__(self, server):
        return server in self._ring
