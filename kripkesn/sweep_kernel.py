"""Diamond-difference transport sweep over a single subdomain."""

from __future__ import annotations

from itertools import product

import numpy as np

from .moments import Problem

__all__ = ["sweep_subdomain"]


def _traversal(count: int, step: int) -> range:
    """Zone indices along one axis, in the order a sweep visits them."""
    if step == 0:
        raise ValueError("sweep direction step must be non-zero")
    if step > 0:
        return range(0, count, step)
    return range(count - 1, -1, step)


def _face_coefficients(cosines: np.ndarray, widths: np.ndarray) -> np.ndarray:
    """Per-zone, per-direction ``2 * cos / width`` as (zones, directions, 1)."""
    return (2.0 * cosines[None, :] / widths[:, None])[:, :, None]


def sweep_subdomain(problem: Problem, sdom_id: int) -> None:
    """Sweep the angular flux ``psi = Hinv * rhs`` through one subdomain.

    Incoming face fluxes are read from the subdomain's ``i_plane``,
    ``j_plane`` and ``k_plane``; on return those planes hold the outgoing
    face fluxes.  All directions of the subdomain are assumed to share the
    mesh traversal order of its first direction.
    """
    sdom = problem[sdom_id]
    nx, ny, nz = sdom.zones

    i_order = _traversal(nx, int(sdom.id[0]))
    j_order = _traversal(ny, int(sdom.jd[0]))
    k_order = _traversal(nz, int(sdom.kd[0]))

    x_coef = _face_coefficients(sdom.xcos, sdom.dx)
    y_coef = _face_coefficients(sdom.ycos, sdom.dy)
    z_coef = _face_coefficients(sdom.zcos, sdom.dz)

    psi_lf, psi_fr, psi_bo = sdom.planes()
    psi, rhs, sigt = sdom.psi, sdom.rhs, sdom.sigt_zonal

    for k, j, i in product(k_order, j_order, i_order):
        zone = (k * ny + j) * nx + i
        xd, yd, zd = x_coef[i], y_coef[j], z_coef[k]

        left = psi_lf[:, :, j, k]
        front = psi_fr[:, :, i, k]
        bottom = psi_bo[:, :, i, j]

        new_psi = (rhs[:, :, zone] + left * xd + front * yd + bottom * zd) / (
            xd + yd + zd + sigt[None, :, zone])
        psi[:, :, zone] = new_psi

        psi_lf[:, :, j, k] = 2.0 * new_psi - left
        psi_fr[:, :, i, k] = 2.0 * new_psi - front
        psi_bo[:, :, i, j] = 2.0 * new_psi - bottom