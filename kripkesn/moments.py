"""Problem data and the moment-space kernels of the discrete-ordinates solver.

A :class:`Problem` holds a set of :class:`Subdomain` objects, each owning the
angular flux, the flux moments and the geometry of one block of phase space.
The kernels in this module move data between the angular (direction) space
and the moment space, add scattering and external sources, and integrate the
particle population.

Array conventions used throughout (per subdomain):

* ``psi`` and ``rhs``: ``(directions, groups, zones)``
* ``phi`` and ``phi_out``: ``(moments, groups, zones)``
* ``ell``: ``(moments, directions)``; ``ell_plus``: ``(directions, moments)``
* ``i_plane``: ``(directions, groups, ny, nz)``;
  ``j_plane``: ``(directions, groups, nx, nz)``;
  ``k_plane``: ``(directions, groups, nx, ny)``
* zones are numbered ``z = (k * ny + j) * nx + i``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

__all__ = [
    "Subdomain",
    "Problem",
    "ltimes",
    "lplus_times",
    "scattering",
    "source",
    "population",
]


def _float_array(name, value, shape, default):
    arr = np.array(default() if value is None else value, dtype=float)
    if arr.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {arr.shape}")
    return arr


def _int_array(name, value, shape, default):
    arr = np.array(default() if value is None else value, dtype=np.int64)
    if arr.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {arr.shape}")
    return arr


@dataclass(eq=False)
class Subdomain:
    """One block of phase space: a set of directions, groups and zones.

    Any array left as ``None`` is given a default: zero fluxes, unit mesh
    spacing, equal unit quadrature weights, one pure material-0 mixed element
    per zone, and the standard moment-to-Legendre mapping ``n = isqrt(nm)``.
    """

    num_directions: int
    num_groups: int
    num_moments: int
    zones: tuple
    group_lower: int = 0
    r_space: int = 0
    global_id: Optional[int] = None
    upwind: tuple = (-1, -1, -1)
    downwind: tuple = (-1, -1, -1)

    ell: Optional[np.ndarray] = None
    ell_plus: Optional[np.ndarray] = None
    psi: Optional[np.ndarray] = None
    rhs: Optional[np.ndarray] = None
    phi: Optional[np.ndarray] = None
    phi_out: Optional[np.ndarray] = None
    moment_to_legendre: Optional[np.ndarray] = None

    w: Optional[np.ndarray] = None
    xcos: Optional[np.ndarray] = None
    ycos: Optional[np.ndarray] = None
    zcos: Optional[np.ndarray] = None
    id: Optional[np.ndarray] = None
    jd: Optional[np.ndarray] = None
    kd: Optional[np.ndarray] = None

    dx: Optional[np.ndarray] = None
    dy: Optional[np.ndarray] = None
    dz: Optional[np.ndarray] = None
    volume: Optional[np.ndarray] = None
    sigt_zonal: Optional[np.ndarray] = None

    zone_to_mixelem: Optional[np.ndarray] = None
    zone_to_num_mixelem: Optional[np.ndarray] = None
    mixelem_to_zone: Optional[np.ndarray] = None
    mixelem_to_material: Optional[np.ndarray] = None
    mixelem_to_fraction: Optional[np.ndarray] = None

    i_plane: Optional[np.ndarray] = None
    j_plane: Optional[np.ndarray] = None
    k_plane: Optional[np.ndarray] = None

    def __post_init__(self):
        if len(self.zones) != 3:
            raise ValueError("zones must give (nx, ny, nz)")
        nx, ny, nz = (int(n) for n in self.zones)
        if min(nx, ny, nz) < 1:
            raise ValueError("every zone dimension must be at least 1")
        if min(self.num_directions, self.num_groups, self.num_moments) < 1:
            raise ValueError("directions, groups and moments must be at least 1")
        self.zones = (nx, ny, nz)
        self.upwind = tuple(int(v) for v in self.upwind)
        self.downwind = tuple(int(v) for v in self.downwind)
        if len(self.upwind) != 3 or len(self.downwind) != 3:
            raise ValueError("upwind and downwind need one entry per dimension")

        d, g, m, z = self.num_directions, self.num_groups, self.num_moments, self.num_zones

        self.ell = _float_array("ell", self.ell, (m, d), lambda: np.zeros((m, d)))
        self.ell_plus = _float_array(
            "ell_plus", self.ell_plus, (d, m), lambda: np.zeros((d, m)))
        self.psi = _float_array("psi", self.psi, (d, g, z), lambda: np.zeros((d, g, z)))
        self.rhs = _float_array("rhs", self.rhs, (d, g, z), lambda: np.zeros((d, g, z)))
        self.phi = _float_array("phi", self.phi, (m, g, z), lambda: np.zeros((m, g, z)))
        self.phi_out = _float_array(
            "phi_out", self.phi_out, (m, g, z), lambda: np.zeros((m, g, z)))
        self.moment_to_legendre = _int_array(
            "moment_to_legendre", self.moment_to_legendre, (m,),
            lambda: [math.isqrt(nm) for nm in range(m)])

        self.w = _float_array("w", self.w, (d,), lambda: np.ones(d))
        cosine = 1.0 / math.sqrt(3.0)
        self.xcos = _float_array("xcos", self.xcos, (d,), lambda: np.full(d, cosine))
        self.ycos = _float_array("ycos", self.ycos, (d,), lambda: np.full(d, cosine))
        self.zcos = _float_array("zcos", self.zcos, (d,), lambda: np.full(d, cosine))
        self.id = _int_array("id", self.id, (d,), lambda: np.ones(d))
        self.jd = _int_array("jd", self.jd, (d,), lambda: np.ones(d))
        self.kd = _int_array("kd", self.kd, (d,), lambda: np.ones(d))

        self.dx = _float_array("dx", self.dx, (nx,), lambda: np.ones(nx))
        self.dy = _float_array("dy", self.dy, (ny,), lambda: np.ones(ny))
        self.dz = _float_array("dz", self.dz, (nz,), lambda: np.ones(nz))
        self.volume = _float_array(
            "volume", self.volume, (z,),
            lambda: np.einsum("k,j,i->kji", self.dz, self.dy, self.dx).ravel())
        self.sigt_zonal = _float_array(
            "sigt_zonal", self.sigt_zonal, (g, z), lambda: np.zeros((g, z)))

        self.zone_to_mixelem = _int_array(
            "zone_to_mixelem", self.zone_to_mixelem, (z,), lambda: np.arange(z))
        self.zone_to_num_mixelem = _int_array(
            "zone_to_num_mixelem", self.zone_to_num_mixelem, (z,), lambda: np.ones(z))
        num_mix = int(self.zone_to_num_mixelem.sum())
        self.mixelem_to_zone = _int_array(
            "mixelem_to_zone", self.mixelem_to_zone, (num_mix,),
            lambda: np.repeat(np.arange(z), self.zone_to_num_mixelem))
        self.mixelem_to_material = _int_array(
            "mixelem_to_material", self.mixelem_to_material, (num_mix,),
            lambda: np.zeros(num_mix))
        self.mixelem_to_fraction = _float_array(
            "mixelem_to_fraction", self.mixelem_to_fraction, (num_mix,),
            lambda: np.ones(num_mix))

        self.i_plane = _float_array(
            "i_plane", self.i_plane, (d, g, ny, nz), lambda: np.zeros((d, g, ny, nz)))
        self.j_plane = _float_array(
            "j_plane", self.j_plane, (d, g, nx, nz), lambda: np.zeros((d, g, nx, nz)))
        self.k_plane = _float_array(
            "k_plane", self.k_plane, (d, g, nx, ny), lambda: np.zeros((d, g, nx, ny)))

    @property
    def num_zones(self) -> int:
        nx, ny, nz = self.zones
        return nx * ny * nz

    @property
    def num_mixelems(self) -> int:
        return len(self.mixelem_to_material)

    def planes(self):
        """The i, j and k boundary planes, in dimension order."""
        return (self.i_plane, self.j_plane, self.k_plane)

    def _mixing(self):
        """Pairs (zone, mixed element) for every mixed element of every zone."""
        counts = self.zone_to_num_mixelem
        mix_zone = np.repeat(np.arange(self.num_zones), counts)
        firsts = np.repeat(np.cumsum(counts) - counts, counts)
        offsets = np.arange(len(mix_zone)) - firsts
        mix_idx = np.repeat(self.zone_to_mixelem, counts) + offsets
        return mix_zone, mix_idx


@dataclass(eq=False)
class Problem:
    """All subdomains held by this rank, plus the shared cross sections.

    ``sigs`` is indexed ``(material, legendre, global dst group, global src
    group)``.  ``global_to_rank`` maps global subdomain ids to the rank that
    owns them; ids it does not mention belong to ``rank``.
    """

    subdomains: dict
    sigs: np.ndarray
    rank: int = 0
    global_to_rank: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.subdomains:
            raise ValueError("a problem needs at least one subdomain")
        self.sigs = np.array(self.sigs, dtype=float)
        if self.sigs.ndim != 4:
            raise ValueError("sigs must be indexed (material, legendre, group, group)")
        if self.sigs.shape[2] != self.sigs.shape[3]:
            raise ValueError("sigs must be square in its group indices")
        self.subdomains = {int(k): v for k, v in self.subdomains.items()}
        for sdom_id, sdom in self.subdomains.items():
            if sdom.global_id is None:
                sdom.global_id = sdom_id
        self.global_to_rank = {int(k): int(v) for k, v in self.global_to_rank.items()}
        for sdom in self.subdomains.values():
            self.global_to_rank.setdefault(sdom.global_id, self.rank)
        self.global_to_sdom = {
            sdom.global_id: sdom_id for sdom_id, sdom in self.subdomains.items()}

    def subdomain_ids(self):
        """Local subdomain ids in ascending order."""
        return sorted(self.subdomains)

    def __getitem__(self, sdom_id):
        return self.subdomains[sdom_id]

    def __iter__(self):
        return (self.subdomains[i] for i in self.subdomain_ids())


def ltimes(problem: Problem) -> None:
    """Discrete to moments: ``phi += ell * psi`` in every subdomain."""
    for sdom in problem:
        sdom.phi += np.einsum("md,dgz->mgz", sdom.ell, sdom.psi)


def lplus_times(problem: Problem) -> None:
    """Moments to discrete: ``rhs += ell_plus * phi_out`` in every subdomain."""
    for sdom in problem:
        sdom.rhs += np.einsum("dm,mgz->dgz", sdom.ell_plus, sdom.phi_out)


def _zonal_sigs(problem: Problem, sdom: Subdomain) -> np.ndarray:
    """Material-fraction weighted cross sections per zone: (zone, n, g, gp)."""
    mix_zone, mix_idx = sdom._mixing()
    materials = sdom.mixelem_to_material[mix_idx]
    fractions = sdom.mixelem_to_fraction[mix_idx]
    zonal = np.zeros((sdom.num_zones,) + problem.sigs.shape[1:])
    np.add.at(zonal, mix_zone, problem.sigs[materials] * fractions[:, None, None, None])
    return zonal


def scattering(problem: Problem) -> None:
    """Add the scattering source from ``phi`` into ``phi_out``.

    Every source subdomain feeds every destination subdomain sharing its
    spatial (R) subdomain, mapping local groups to global groups through
    ``group_lower``.
    """
    for src_id in problem.subdomain_ids():
        src = problem[src_id]
        zonal = None
        for dst_id in problem.subdomain_ids():
            dst = problem[dst_id]
            if src.r_space != dst.r_space:
                continue
            if dst.num_zones != src.num_zones or dst.num_moments != src.num_moments:
                raise ValueError(
                    f"subdomains {src_id} and {dst_id} share a spatial subdomain "
                    "but differ in zones or moments")
            if zonal is None:
                zonal = _zonal_sigs(problem, src)
            g_dst = np.arange(dst.num_groups) + dst.group_lower
            g_src = np.arange(src.num_groups) + src.group_lower
            sub = zonal[:, src.moment_to_legendre][:, :, g_dst][:, :, :, g_src]
            dst.phi_out += np.einsum("zmgh,mhz->mgz", sub, src.phi)


def source(problem: Problem, strength: float = 1.0) -> None:
    """Add an isotropic source to moment 0 of every zone holding material 0."""
    for sdom in problem:
        mask = sdom.mixelem_to_material == 0
        per_zone = np.zeros(sdom.num_zones)
        np.add.at(per_zone, sdom.mixelem_to_zone[mask],
                  strength * sdom.mixelem_to_fraction[mask])
        sdom.phi_out[0] += per_zone


def population(problem: Problem) -> float:
    """Integral of ``psi`` over all of phase space held by the problem."""
    return float(sum(
        np.einsum("d,dgz,z->", sdom.w, sdom.psi, sdom.volume) for sdom in problem))