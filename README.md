# kripkesn

Building blocks for a discrete-ordinates (Sn) particle transport solve on a
structured 3-D mesh that is split into subdomains. Everything is plain
Python on top of numpy arrays.

## Modules

### `kripkesn.moments`

- `Subdomain` – one block of phase space: a number of directions, groups
  and moments, and a zone grid `zones=(nx, ny, nz)`. It holds the angular
  flux (`psi`, `rhs`), the flux moments (`phi`, `phi_out`), the moment
  operators (`ell`, `ell_plus`), quadrature data, mesh spacing, total cross
  sections, material mixing and the face planes (`i_plane`, `j_plane`,
  `k_plane`). Arrays left as `None` get defaults (zero fluxes and zero
  `ell`/`ell_plus`, unit spacing, unit weights, one pure material-0 mixed
  element per zone). Wrong shapes raise `ValueError`. `upwind` and
  `downwind` give the global id of the neighbour in each dimension, or `-1`
  for a boundary.
- `Problem` – the subdomains held by this rank (a dict keyed by local id),
  the scattering cross sections `sigs` indexed
  `(material, legendre, dst group, src group)`, the rank and a
  `global_to_rank` map. `problem.subdomain_ids()` returns the local ids in
  ascending order; `problem[sdom_id]` returns a subdomain.
- Kernels, each acting on every subdomain of a problem:
  - `ltimes(problem)`: `phi += ell * psi`
  - `lplus_times(problem)`: `rhs += ell_plus * phi_out`
  - `scattering(problem)`: adds the scattering source from `phi` into
    `phi_out`, between subdomains that share a spatial (`r_space`) block
  - `source(problem, strength=1.0)`: isotropic source into moment 0 of
    every zone holding material 0
  - `population(problem)`: the weighted integral of `psi` over phase space

The kernels accumulate; zero the target arrays first when you want a fresh
result.

### `kripkesn.sweep_kernel`

`sweep_subdomain(problem, sdom_id)` performs the diamond-difference sweep
of one subdomain: it computes `psi` from `rhs` and the incoming face planes,
and leaves the outgoing face fluxes in the planes. The traversal order
follows the signs of the first direction's `id`, `jd` and `kd`.

### `kripkesn.parallel_comm`

Work queues that order subdomain sweeps by their upwind dependencies:

- `SweepComm` – a subdomain is ready once all of its upwind neighbours have
  completed; `mark_complete` copies its outgoing faces into the downwind
  neighbours' planes.
- `BlockJacobiComm` – `add_subdomain` snapshots the current planes, and the
  first call to `work_remaining` hands those snapshots downwind, so every
  subdomain is ready at once and uses face data from before the sweep.
- `ParallelComm` – the base queue, which posts no face data on completion.

Each offers `add_subdomain(sdom_id)`, `work_remaining()`,
`ready_subdomains()` and `mark_complete(sdom_id)`. Unknown subdomains, and
neighbours owned by another rank, raise `CommError`.

## Example

```python
import numpy as np
from kripkesn.moments import (Problem, Subdomain, ltimes, lplus_times,
                              scattering, source, population)
from kripkesn.sweep_kernel import sweep_subdomain
from kripkesn.parallel_comm import SweepComm

def block(**neighbours):
    return Subdomain(num_directions=1, num_groups=1, num_moments=1,
                     zones=(4, 4, 4), ell=np.ones((1, 1)),
                     ell_plus=np.ones((1, 1)),
                     sigt_zonal=np.ones((1, 64)), **neighbours)

problem = Problem({0: block(downwind=(1, -1, -1)),
                   1: block(upwind=(0, -1, -1))},
                  sigs=np.full((1, 1, 1, 1), 0.5))

for sdom in problem:
    sdom.phi[...] = 0.0
    sdom.phi_out[...] = 0.0
    sdom.rhs[...] = 0.0
    for plane in sdom.planes():
        plane[...] = 0.0
ltimes(problem)
scattering(problem)
source(problem)
lplus_times(problem)

comm = SweepComm(problem)
for sdom_id in problem.subdomain_ids():
    comm.add_subdomain(sdom_id)
while comm.work_remaining():
    sdom_id = comm.ready_subdomains()[0]
    sweep_subdomain(problem, sdom_id)
    comm.mark_complete(sdom_id)

print(population(problem))
```

## What it does not do

- There is no iteration driver: the source-iteration loop, convergence
  reporting and the clearing of boundary planes before each sweep are left
  to the caller, as in the example above.
- There are no built-in timers or timing reports.
- There is no command-line program and no input-deck reader; problems are
  built in Python.
- Everything runs on a single rank; a neighbour owned by another rank
  raises `CommError` instead of being communicated with.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```