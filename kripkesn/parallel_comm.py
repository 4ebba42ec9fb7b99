"""Work queues that order subdomain sweeps by their upwind dependencies.

All neighbouring subdomains must live on this rank: boundary data is handed
from one subdomain's planes to its downwind neighbour's planes directly.
A neighbour owned by another rank raises :class:`CommError`.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .moments import Problem, Subdomain

__all__ = ["CommError", "ParallelComm", "SweepComm", "BlockJacobiComm"]


class CommError(RuntimeError):
    """Raised when subdomain communication cannot be carried out."""


@dataclass(eq=False)
class _Pending:
    sdom_id: int
    depends: int


class ParallelComm:
    """Queue of subdomains with the number of upwind dependencies each awaits.

    The base class posts no sends on completion; subclasses decide when
    boundary data flows downwind.
    """

    def __init__(self, problem: Problem):
        self.problem = problem
        self._queue: list[_Pending] = []

    def add_subdomain(self, sdom_id: int) -> None:
        """Add a subdomain to the work queue, counting its upwind dependencies."""
        self._post_recvs(sdom_id)

    def work_remaining(self) -> bool:
        """Whether any queued subdomain is still to be completed."""
        return bool(self._queue)

    def ready_subdomains(self) -> list:
        """Queued subdomains with no outstanding dependencies, in queue order."""
        return self._ready_list()

    def mark_complete(self, sdom_id: int) -> None:
        """Remove a finished subdomain from the work queue."""
        self._dequeue(sdom_id)

    def _subdomain(self, sdom_id: int) -> Subdomain:
        try:
            return self.problem[sdom_id]
        except KeyError:
            raise CommError(f"Unknown subdomain id {sdom_id}") from None

    def _owner(self, global_id: int) -> int:
        try:
            return self.problem.global_to_rank[global_id]
        except KeyError:
            raise CommError(f"Global subdomain id {global_id} has no owning rank") from None

    def _find(self, sdom_id: int) -> _Pending:
        for entry in self._queue:
            if entry.sdom_id == sdom_id:
                return entry
        raise CommError(f"Cannot find subdomain id {sdom_id} in work queue")

    def _dequeue(self, sdom_id: int) -> None:
        self._queue.remove(self._find(sdom_id))

    def _post_recvs(self, sdom_id: int) -> None:
        sdom = self._subdomain(sdom_id)
        depends = 0
        for upwind in sdom.upwind:
            if upwind < 0:
                continue
            if self._owner(upwind) != self.problem.rank:
                raise CommError(
                    f"Subdomain {sdom_id} depends on remote subdomain {upwind}; "
                    "all communication must be on-rank")
            depends += 1
        self._queue.append(_Pending(sdom_id, depends))

    def _post_sends(self, sdom_id: int, buffers) -> None:
        sdom = self._subdomain(sdom_id)
        for dim, (downwind, buffer) in enumerate(zip(sdom.downwind, buffers)):
            if downwind < 0:
                continue
            if self._owner(downwind) != self.problem.rank:
                raise CommError(
                    f"Subdomain {sdom_id} feeds remote subdomain {downwind}; "
                    "cannot send to another rank")
            local_id = self.problem.global_to_sdom.get(downwind)
            if local_id is None:
                raise CommError(f"Global subdomain id {downwind} is not held locally")

            entry = next((e for e in self._queue if e.sdom_id == local_id), None)
            if entry is not None:
                entry.depends -= 1

            target = self.problem[local_id].planes()[dim]
            target[...] = np.reshape(buffer, target.shape)

    def _ready_list(self) -> list:
        return [entry.sdom_id for entry in self._queue if entry.depends == 0]


class SweepComm(ParallelComm):
    """Full sweep: a subdomain's outgoing faces go downwind once it completes."""

    def add_subdomain(self, sdom_id: int) -> None:
        """Queue a subdomain behind its upwind neighbours."""
        self._post_recvs(sdom_id)

    def work_remaining(self) -> bool:
        """Whether any queued subdomain is still to be swept."""
        return bool(self._queue)

    def ready_subdomains(self) -> list:
        """Subdomains whose upwind data has all arrived."""
        return self._ready_list()

    def mark_complete(self, sdom_id: int) -> None:
        """Dequeue a swept subdomain and pass its new faces downwind."""
        self._dequeue(sdom_id)
        self._post_sends(sdom_id, self._subdomain(sdom_id).planes())


class BlockJacobiComm(ParallelComm):
    """Block Jacobi: every subdomain uses its neighbours' faces from before the sweep."""

    def __init__(self, problem: Problem):
        super().__init__(problem)
        self._posted_sends = False
        self._old_planes = {
            sdom_id: tuple(np.zeros_like(plane) for plane in sdom.planes())
            for sdom_id, sdom in problem.subdomains.items()
        }

    def add_subdomain(self, sdom_id: int) -> None:
        """Snapshot all current planes, then queue the subdomain."""
        for sid, sdom in self.problem.subdomains.items():
            for old, current in zip(self._old_planes[sid], sdom.planes()):
                old[...] = current
        self._post_recvs(sdom_id)

    def work_remaining(self) -> bool:
        """Send the snapshot faces once, then report whether work is queued."""
        if not self._posted_sends:
            for entry in list(self._queue):
                self._post_sends(entry.sdom_id, self._old_planes[entry.sdom_id])
            self._posted_sends = True
        return bool(self._queue)

    def ready_subdomains(self) -> list:
        """Subdomains whose faces from the previous iterate have arrived."""
        return self._ready_list()

    def mark_complete(self, sdom_id: int) -> None:
        """Remove a swept subdomain from the work queue."""
        self._dequeue(sdom_id)