import numpy as np
import pytest

from kripkesn.moments import (
    Problem,
    Subdomain,
    lplus_times,
    ltimes,
    population,
    scattering,
    source,
)


def _rng():
    return np.random.default_rng(7)


def _sdom(**kwargs):
    params = dict(num_directions=2, num_groups=2, num_moments=4, zones=(2, 2, 1))
    params.update(kwargs)
    return Subdomain(**params)


def _problem(*sdoms, sigs=None):
    if sigs is None:
        sigs = np.zeros((2, 2, 4, 4))
    return Problem(subdomains=dict(enumerate(sdoms)), sigs=sigs)


def test_subdomain_defaults():
    sdom = _sdom(zones=(2, 3, 4))
    assert sdom.num_zones == 24
    assert sdom.psi.shape == (2, 2, 24)
    assert sdom.phi.shape == (4, 2, 24)
    assert sdom.i_plane.shape == (2, 2, 3, 4)
    assert sdom.j_plane.shape == (2, 2, 2, 4)
    assert sdom.k_plane.shape == (2, 2, 2, 3)
    assert list(sdom.moment_to_legendre) == [0, 1, 1, 1]
    assert sdom.num_mixelems == 24


def test_subdomain_rejects_wrong_shape():
    with pytest.raises(ValueError):
        _sdom(psi=np.zeros((2, 2, 5)))


def test_subdomain_rejects_bad_zones():
    with pytest.raises(ValueError):
        _sdom(zones=(2, 2))


def test_problem_rejects_bad_sigs():
    with pytest.raises(ValueError):
        Problem(subdomains={0: _sdom()}, sigs=np.zeros((2, 2, 4)))


def test_problem_ids_and_globals():
    problem = _problem(_sdom(), _sdom(), _sdom())
    assert problem.subdomain_ids() == [0, 1, 2]
    assert problem.global_to_rank == {0: 0, 1: 0, 2: 0}
    assert problem.global_to_sdom == {0: 0, 1: 1, 2: 2}


def test_ltimes_selects_direction():
    psi = _rng().random((2, 2, 4))
    ell = np.zeros((4, 2))
    ell[3, 1] = 1.0
    sdom = _sdom(psi=psi, ell=ell)
    ltimes(_problem(sdom))
    np.testing.assert_allclose(sdom.phi[3], psi[1])
    np.testing.assert_allclose(sdom.phi[:3], 0.0)


def test_ltimes_accumulates():
    rng = _rng()
    sdom = _sdom(psi=rng.random((2, 2, 4)), ell=rng.random((4, 2)))
    problem = _problem(sdom)
    ltimes(problem)
    once = sdom.phi.copy()
    ltimes(problem)
    np.testing.assert_allclose(sdom.phi, 2 * once)


def test_lplus_times_selects_moment():
    phi_out = _rng().random((4, 2, 4))
    ell_plus = np.zeros((2, 4))
    ell_plus[0, 2] = 1.0
    sdom = _sdom(phi_out=phi_out, ell_plus=ell_plus)
    lplus_times(_problem(sdom))
    np.testing.assert_allclose(sdom.rhs[0], phi_out[2])
    np.testing.assert_allclose(sdom.rhs[1], 0.0)


def test_lplus_times_linear_in_phi_out():
    rng = _rng()
    ell_plus = rng.random((2, 4))
    phi_out = rng.random((4, 2, 4))
    a = _sdom(phi_out=phi_out, ell_plus=ell_plus)
    b = _sdom(phi_out=3 * phi_out, ell_plus=ell_plus)
    lplus_times(_problem(a, b))
    np.testing.assert_allclose(b.rhs, 3 * a.rhs)


def test_source_pure_material_zero():
    sdom = _sdom()
    source(_problem(sdom), 2.5)
    np.testing.assert_allclose(sdom.phi_out[0], 2.5)
    np.testing.assert_allclose(sdom.phi_out[1:], 0.0)


def test_source_default_strength_and_other_material():
    sdom = _sdom(mixelem_to_material=[0, 1, 1, 0])
    source(_problem(sdom))
    np.testing.assert_allclose(sdom.phi_out[0, :, 0], 1.0)
    np.testing.assert_allclose(sdom.phi_out[0, :, 1], 0.0)
    np.testing.assert_allclose(sdom.phi_out[0, :, 2], 0.0)
    np.testing.assert_allclose(sdom.phi_out[0, :, 3], 1.0)


def test_source_uses_fraction():
    sdom = _sdom(
        zone_to_mixelem=[0, 2, 3, 4],
        zone_to_num_mixelem=[2, 1, 1, 1],
        mixelem_to_zone=[0, 0, 1, 2, 3],
        mixelem_to_material=[0, 1, 0, 0, 0],
        mixelem_to_fraction=[0.25, 0.75, 1.0, 1.0, 1.0],
    )
    source(_problem(sdom), 4.0)
    np.testing.assert_allclose(sdom.phi_out[0, :, 0], 1.0)
    np.testing.assert_allclose(sdom.phi_out[0, :, 1:], 4.0)


def test_scattering_identity_cross_section():
    sigs = np.zeros((1, 2, 2, 2))
    for g in range(2):
        sigs[0, :, g, g] = 1.0
    phi = _rng().random((4, 2, 4))
    sdom = _sdom(phi=phi)
    scattering(_problem(sdom, sigs=sigs))
    np.testing.assert_allclose(sdom.phi_out, phi)


def test_scattering_legendre_mapping():
    sigs = np.zeros((1, 2, 2, 2))
    for g in range(2):
        sigs[0, 1, g, g] = 1.0
    phi = _rng().random((4, 2, 4))
    sdom = _sdom(phi=phi)
    scattering(_problem(sdom, sigs=sigs))
    np.testing.assert_allclose(sdom.phi_out[0], 0.0)
    np.testing.assert_allclose(sdom.phi_out[1:], phi[1:])


def test_scattering_between_group_sets():
    sigs = np.zeros((1, 2, 2, 2))
    sigs[0, :, 1, 0] = 1.0
    phi_low = _rng().random((4, 1, 4))
    low = _sdom(num_groups=1, group_lower=0, phi=phi_low)
    high = _sdom(num_groups=1, group_lower=1)
    scattering(_problem(low, high, sigs=sigs))
    np.testing.assert_allclose(high.phi_out, phi_low)
    np.testing.assert_allclose(low.phi_out, 0.0)


def test_scattering_skips_other_spatial_subdomains():
    sigs = np.zeros((1, 2, 2, 2))
    sigs[0, :, 1, 0] = 1.0
    low = _sdom(num_groups=1, group_lower=0, r_space=0, phi=np.ones((4, 1, 4)))
    high = _sdom(num_groups=1, group_lower=1, r_space=1)
    scattering(_problem(low, high, sigs=sigs))
    np.testing.assert_allclose(high.phi_out, 0.0)


def test_scattering_mixed_materials_weighted_by_fraction():
    sigs = np.zeros((2, 2, 2, 2))
    for g in range(2):
        sigs[0, :, g, g] = 1.0
        sigs[1, :, g, g] = 3.0
    phi = _rng().random((4, 2, 4))
    sdom = _sdom(
        phi=phi,
        zone_to_mixelem=[0, 2, 3, 4],
        zone_to_num_mixelem=[2, 1, 1, 1],
        mixelem_to_zone=[0, 0, 1, 2, 3],
        mixelem_to_material=[0, 1, 0, 0, 0],
        mixelem_to_fraction=[0.5, 0.5, 1.0, 1.0, 1.0],
    )
    scattering(_problem(sdom, sigs=sigs))
    np.testing.assert_allclose(sdom.phi_out[:, :, 0], 2 * phi[:, :, 0])
    np.testing.assert_allclose(sdom.phi_out[:, :, 1:], phi[:, :, 1:])


def test_population_zero_flux():
    assert population(_problem(_sdom())) == 0.0


def test_population_scales_with_psi():
    psi = _rng().random((2, 2, 4))
    single = population(_problem(_sdom(psi=psi)))
    double = population(_problem(_sdom(psi=2 * psi)))
    assert double == pytest.approx(2 * single)
    assert single > 0


def test_population_adds_over_subdomains():
    rng = _rng()
    a = _sdom(psi=rng.random((2, 2, 4)), w=rng.random(2))
    b = _sdom(psi=rng.random((2, 2, 4)), w=rng.random(2))
    total = population(_problem(a, b))
    assert total == pytest.approx(population(_problem(a)) + population(_problem(b)))


def test_population_uniform_psi_counts_volume():
    sdom = _sdom(psi=np.ones((2, 2, 4)), w=[0.5, 0.5], dx=[2.0, 2.0])
    assert population(_problem(sdom)) == pytest.approx(2 * float(sdom.volume.sum()))