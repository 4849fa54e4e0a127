from functools import partial
import os
from pathlib import Path
import timeit

import matplotlib

matplotlib.use('Agg')

from astropy.io import ascii
from astropy.table import Table
from astropy.timeseries import LombScargle
import click
import matplotlib.pyplot as plt
import numpy as np

import nfft_lsp
from nfft_lsp import utils
from nfft_lsp.preprocess import frequency_spacing

DEFAULT_OVERSAMPLING = 4
DEFAULT_HIFAC = 1
DEFAULT_DTYPE = 'f8'
DEFAULT_METHODS = ['cufinufft', 'finufft', 'astropy']
METHODS = ['cufinufft', 'finufft', 'astropy', 'astropy_slow']
NTHREAD_MAX = len(os.sched_getaffinity(0))

plt.rcParams['font.family'] = 'serif'
plt.rcParams['mathtext.fontset'] = 'dejavuserif'


def do_nfft_lsp(t, y, oversampling, hifac, backend):
    res = nfft_lsp.lombscargle(t, y, oversampling=oversampling, hifac=hifac, backend=backend)
    return res.freq(), res.power


def do_astropy(t, y, freq, method='fast'):
    power = LombScargle(t, y, fit_mean=False, center_data=True).power(freq, method=method)
    return freq, power


def run_one(method, N, dtype, oversampling, hifac, seed=5043, time=True):
    dtype = np.dtype(dtype).type
    rng = np.random.default_rng(seed)

    # Generate fake data
    t = np.sort(rng.uniform(0, 100, N)).astype(dtype)
    f0 = rng.uniform(0.1, 0.4 * N / 100)
    y = (np.sin(2 * np.pi * f0 * t) + rng.normal(0, 0.5, N)).astype(dtype)

    if method.startswith('astropy'):
        # the same grid as nfft-lsp, built outside the timed call
        ng, _, over_eff = utils.resolve_grid_size(N, oversampling, hifac)
        df = frequency_spacing(float(t[-1] - t[0]), over_eff)
        freq = df * np.arange(1, ng)
        astropy_method = 'slow' if method == 'astropy_slow' else 'fast'
        func = partial(do_astropy, t, y, freq, method=astropy_method)
    else:
        func = partial(do_nfft_lsp, t, y, oversampling, hifac, method)

    res = {'method': method, 'N': N, 'dtype': dtype.__name__, 'f0': f0}

    # warmup, and get result
    t1 = -timeit.default_timer()
    freq, power = func()
    t1 += timeit.default_timer()
    res['firsttime'] = t1
    res['fpeak'] = freq[np.argmax(power[: len(freq)])]
    res['df'] = freq[1] - freq[0]

    if time:
        nrep, tot_time = autorange(timeit.Timer(func))
        res['time'] = tot_time / nrep

    return res


def autorange(timer: timeit.Timer, min_time=2.0):
    """Adapted from timeit.Timer.autorange"""
    i = 1
    while True:
        for j in 1, 2, 5:
            number = i * j
            time_taken = timer.timeit(number)
            if time_taken >= min_time:
                return (number, time_taken)
        i *= 10


@click.group()
def cli():
    pass


@cli.command('bench', context_settings={'show_default': True})
@click.option('-logmin', type=float, default=3, help='log10 of min number of samples')
@click.option('-logmax', type=float, default=6, help='log10 of max number of samples')
@click.option('-logdelta', type=float, default=1, help='Spacing in log10 for N values')
@click.option('-over', 'oversampling', type=float, default=DEFAULT_OVERSAMPLING, help='oversampling')
@click.option('-hifac', type=float, default=DEFAULT_HIFAC, help='high-frequency factor')
@click.option(
    '-dtype', default=DEFAULT_DTYPE, help='dtype', type=click.Choice(('f4', 'f8'))
)
@click.option(
    '--method',
    '-m',
    'methods',
    default=DEFAULT_METHODS,
    help='methods to run',
    multiple=True,
    type=click.Choice(METHODS),
)
@click.option(
    '-o', '--results-file', default='bench_results.ecsv', help='File to save results to'
)
def bench(logmin, logmax, logdelta, oversampling, hifac, dtype, methods, results_file):
    available = nfft_lsp.available_backends()
    methods = [m for m in methods if m.startswith('astropy') or m in available]

    print(
        f'Running with {logmin=}, {logmax=}, {logdelta=}, {oversampling=}, {hifac=}, dtype {dtype}'
    )

    all_N = np.logspace(
        logmin, logmax, int((logmax - logmin) / logdelta) + 1, dtype=int
    )

    all_res = []
    for method in methods:
        for N in all_N:
            res = run_one(method, N, dtype, oversampling, hifac)
            print(
                f'{method} took {res["time"]:8.4g} sec (N={N:d}), '
                f'peak off by {abs(res["fpeak"] - res["f0"]) / res["df"]:.2f} bins'
            )
            all_res.append(res)

    all_res = Table(
        all_res,
        meta={'oversampling': oversampling, 'hifac': hifac, 'nthread_max': NTHREAD_MAX},
    )
    all_res.write(results_file, overwrite=True)

    plot_fname = Path(results_file).with_suffix('.png')
    _plot(all_res, fname=plot_fname)


@cli.command()
@click.argument('results_file')
def plot(results_file):
    results = ascii.read(results_file)
    plot_fname = Path(results_file).with_suffix('.png')
    _plot(results, fname=plot_fname)


def _plot(all_res: Table, fname='bench_results.png'):
    fig, ax = plt.subplots(layout='constrained')

    for i, group in enumerate(all_res.group_by('method').groups):
        method = group['method'][0]
        label = method if method.startswith('astropy') else f'nfft-lsp ({method})'
        ax.plot(group['N'], group['time'], label=label, marker='o', color=f'C{i}')

    ax.set_xscale('log')
    ax.set_yscale('log')
    ax.set_xlabel('$N$ samples')
    ax.set_ylabel('Time [sec]')
    ax.legend()
    ax.set_title(
        f'oversampling={all_res.meta["oversampling"]}, hifac={all_res.meta["hifac"]}'
    )

    fig.savefig(fname)
    print(f'Saved plot to {fname}')


if __name__ == '__main__':
    cli()
