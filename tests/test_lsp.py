"""
Tests for the nfft-lsp periodogram pipeline, including comparison against a brute-force
transform and against Astropy's peak location.
"""

from __future__ import annotations

from functools import partial

import numpy as np
import pytest

import nfft_lsp
import nfft_lsp.core
from nfft_lsp import LSPFlags
from nfft_lsp.test_helpers.utils import gen_data, lsp_direct


BACKENDS = ['finufft', 'cufinufft']


@pytest.fixture(scope='module')
def data():
    return gen_data()


@pytest.fixture(scope='module')
def batched_data():
    return gen_data(Nbatch=20)


@pytest.fixture(scope='module')
def sine_data():
    return gen_data(N=64, freq=1.3, noise=0.05, seed=42)


@pytest.fixture(scope='module')
def lsp_backend(request):
    avail_backends = nfft_lsp.core.AVAILABLE_BACKENDS

    if request.param in avail_backends:
        fn = partial(nfft_lsp.lombscargle, backend=request.param)
        return fn, request.param
    else:
        pytest.skip(f'Backend {request.param} is not available')


@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_sinusoid_peak(sine_data, lsp_backend):
    """A pure sinusoid gives a single dominant, significant peak at its frequency"""
    backend_fn, _ = lsp_backend
    f0 = 1.3

    res = backend_fn(**sine_data, oversampling=4, hifac=1)
    freq = res.freq()

    assert res.ng == 128
    ipeak = np.argmax(res.power)
    assert abs(freq[ipeak] - f0) <= res.df

    # well separated from the rest of the spectrum
    far = np.abs(freq - f0) > 10 * res.df
    assert res.power[ipeak] > 5 * res.power[far].max()

    rng = np.random.default_rng(0)
    iother = rng.choice(np.flatnonzero(far[:-1]))

    fap_peak = res.false_alarm_probability(res.power[ipeak])
    fap_other = res.false_alarm_probability(res.power[iother])
    assert fap_peak < 1e-3
    assert fap_peak < 1e-3 * fap_other


def test_result_false_alarm_probability(sine_data):
    """The result's significance applies to given powers, not to a whole periodogram"""
    res = nfft_lsp.lombscargle(**sine_data, oversampling=1, hifac=1)
    assert res.false_alarm_probability(0.0) == 1.0
    assert res.false_alarm_probability(res.npts / 4) < 1.0

    with pytest.raises(TypeError):
        res.false_alarm_probability()

    with pytest.raises(ValueError, match='npts/2'):
        res.false_alarm_probability(res.npts)

    with pytest.raises(ValueError, match='npts/2'):
        res.false_alarm_probability(np.nan)


@pytest.mark.parametrize('oversampling,hifac', [(2.5, 1), (4, 1), (10, 0.5), (4, 3)])
@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_against_direct(data, lsp_backend, oversampling, hifac):
    """Check the NFFT pipeline against the brute-force transform"""
    backend_fn, _ = lsp_backend

    res = backend_fn(**data, oversampling=oversampling, hifac=hifac)
    brute = lsp_direct(**data, oversampling=oversampling, hifac=hifac)

    assert res.power.shape == brute.shape
    np.testing.assert_allclose(res.power, brute, rtol=1e-5, atol=1e-7 * brute.max())


@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_batched(batched_data, lsp_backend):
    """Each row of a batch matches the unbatched periodogram of that row"""
    backend_fn, _ = lsp_backend

    t = batched_data['t']
    y_batch = batched_data['y']

    res = backend_fn(t, y_batch)
    assert res.power.shape == (len(y_batch), res.ng)

    for i in range(len(y_batch)):
        single = backend_fn(t, y_batch[i])
        np.testing.assert_allclose(res.power[i], single.power, rtol=1e-6, atol=1e-9)


@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_last_bin_zero(data, batched_data, lsp_backend):
    backend_fn, _ = lsp_backend

    assert backend_fn(**data).power[-1] == 0.0
    assert np.all(backend_fn(**batched_data).power[:, -1] == 0.0)


@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_deterministic(data, lsp_backend):
    """Two runs with the same inputs give the same periodogram"""
    backend_fn, _ = lsp_backend

    power1 = backend_fn(**data).power
    power2 = backend_fn(**data).power

    np.testing.assert_allclose(power1, power2, rtol=1e-12, atol=0)


@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_unsorted(data, lsp_backend):
    backend_fn, _ = lsp_backend

    rng = np.random.default_rng(1)
    perm = rng.permutation(len(data['t']))

    sorted_res = backend_fn(**data)
    shuffled_res = backend_fn(
        data['t'][perm], data['y'][perm], assume_sorted_t=False
    )

    np.testing.assert_allclose(sorted_res.power, shuffled_res.power, rtol=1e-6, atol=1e-9)


@pytest.mark.parametrize(
    'N,oversampling,hifac',
    [(2, 1, 1), (3, 1.5, 1), (64, 4, 1), (100, 4, 1), (100, 5, 2.3), (1000, 7, 0.7)],
)
def test_grid_size(N, oversampling, hifac):
    """ng is a power of two covering the requested grid, with the oversampling scaled up"""
    data = gen_data(N=N)
    res = nfft_lsp.lombscargle(**data, oversampling=oversampling, hifac=hifac)

    NG = int(np.floor(0.5 * N * oversampling * hifac))
    assert res.NG == NG
    assert res.ng >= NG
    assert res.ng & (res.ng - 1) == 0
    assert res.ng < 2 * NG
    assert res.oversampling == pytest.approx(oversampling * res.ng / NG)
    assert res.power.shape == (res.ng,)

    # rounding ng up leaves the highest frequency where NG bins would have put it
    baseline = data['t'][-1] - data['t'][0]
    assert res.freq()[-1] == pytest.approx(NG / (oversampling * baseline), rel=1e-4)


def test_invalid_inputs(data):
    t, y = data['t'], data['y']

    with pytest.raises(ValueError, match='At least 2 samples'):
        nfft_lsp.lombscargle(t[:1], y[:1])

    with pytest.raises(ValueError, match='oversampling must be positive'):
        nfft_lsp.lombscargle(t, y, oversampling=0)

    with pytest.raises(ValueError, match='hifac must be positive'):
        nfft_lsp.lombscargle(t, y, hifac=-1)

    with pytest.raises(ValueError, match='same number of samples'):
        nfft_lsp.lombscargle(t, y[:-1])

    with pytest.raises(ValueError, match='non-degenerate'):
        nfft_lsp.lombscargle(t[::-1], y)

    with pytest.raises(ValueError, match='constant'):
        nfft_lsp.lombscargle(t, np.ones_like(y))

    with pytest.raises(ValueError, match='wrap around'):
        nfft_lsp.lombscargle(t, y, oversampling=0.5, hifac=1)

    with pytest.raises(TypeError, match='float32 or float64'):
        nfft_lsp.lombscargle(t.astype(np.int64), y.astype(np.int64))

    with pytest.raises(ValueError, match='Unknown or unavailable backend'):
        nfft_lsp.lombscargle(t, y, backend='non_existed_backend')


def test_mixed_dtypes(data):
    """Test that calling lombscargle with mixed dtypes raises an exception."""
    with pytest.raises(ValueError, match='dtype'):
        nfft_lsp.lombscargle(data['t'].astype(np.float32), data['y'])


@pytest.mark.parametrize('lsp_backend', BACKENDS, indirect=True)
def test_float32(data, lsp_backend):
    backend_fn, _ = lsp_backend

    t32 = data['t'].astype(np.float32)
    y32 = data['y'].astype(np.float32)

    res32 = backend_fn(t32, y32)
    res64 = backend_fn(**data)

    assert res32.power.dtype == np.float32
    assert abs(int(np.argmax(res32.power)) - int(np.argmax(res64.power))) <= 1
    np.testing.assert_allclose(res32.power, res64.power, rtol=1e-2, atol=1e-3 * res64.power.max())


def test_flags(data, capsys):
    res = nfft_lsp.lombscargle(**data, backend='finufft', flags=LSPFlags.TIMING)
    out = capsys.readouterr().out
    assert 'nfft-lsp finufft: nfft' in out
    assert 'nfft-lsp finufft: power kernel' in out
    assert res.flags == LSPFlags.TIMING

    res = nfft_lsp.lombscargle(**data, backend='finufft')
    assert capsys.readouterr().out == ''
    assert isinstance(res.power, np.ndarray)


@pytest.mark.parametrize('lsp_backend', ['cufinufft'], indirect=True)
def test_retain_on_device(data, lsp_backend):
    import cupy as cp

    backend_fn, _ = lsp_backend

    res = backend_fn(**data, flags=LSPFlags.RETAIN_ON_DEVICE)
    assert isinstance(res.power, cp.ndarray)

    host = backend_fn(**data)
    np.testing.assert_allclose(res.power.get(), host.power)


def test_backends(data):
    """All available backends agree"""
    backends = [b for b in nfft_lsp.core.AVAILABLE_BACKENDS if b != 'auto']
    if len(backends) < 2:
        pytest.skip('Need more than one backend to compare')

    powers = {
        backend: nfft_lsp.lombscargle(**data, backend=backend).power
        for backend in backends
    }

    for backend1, power1 in powers.items():
        for backend2, power2 in powers.items():
            if backend1 == backend2:
                continue
            np.testing.assert_allclose(power1, power2, rtol=1e-5, atol=1e-9)


def test_astropy_peak(sine_data):
    """The peak agrees with Astropy's Lomb-Scargle on the same frequency grid"""
    timeseries = pytest.importorskip('astropy.timeseries')

    res = nfft_lsp.lombscargle(**sine_data, oversampling=4, hifac=1)
    freq = res.freq()[:-1]

    ls = timeseries.LombScargle(sine_data['t'], sine_data['y'], fit_mean=False, center_data=True)
    astropy_power = ls.power(freq, method='slow')

    assert abs(freq[np.argmax(astropy_power)] - freq[np.argmax(res.power[:-1])]) <= res.df


def test_nonfinite_warning(data, caplog, monkeypatch):
    """Non-finite bins pass through unchanged and are reported"""
    from nfft_lsp import kernel

    def degenerate_power(*args, **kwargs):
        power = kernel.lsp_power(*args, **kwargs)
        power[..., 3] = np.inf
        return power

    monkeypatch.setattr(nfft_lsp.core, 'lsp_power', degenerate_power)

    res = nfft_lsp.lombscargle(**data, backend='finufft')
    assert np.isinf(res.power[3])
    assert '1 periodogram bins are not finite' in caplog.text


def test_available_backends(capsys, monkeypatch):
    from nfft_lsp import backends

    assert nfft_lsp.available_backends()[0] == 'auto'

    monkeypatch.setattr(
        backends, '_probe', lambda b: 'cupy is not installed' if b == 'cufinufft' else None
    )
    assert backends.available_backends(verbose=True) == ['auto', 'finufft']
    assert 'cufinufft is unavailable: cupy is not installed' in capsys.readouterr().out
