import itertools
from contextlib import contextmanager
from typing import Optional, Union

import numpy as np
from numpy.random import RandomState  # The legacy RandomState is preferred for testing (see https://numpy.org/neps/nep-0019-rng-policy.html#supporting-unit-tests)
import scipy.sparse as sp
import pytest

from ssstensor import SSSTensor


@contextmanager
def does_not_warn(*args, **kwargs):
    """
    Inverse of a `pytest.warns` test: raises `Failed` if the warning was
    emitted. Arguments are the same as for `pytest.warns`.
    """
    from _pytest.outcomes import Failed
    try:
        with pytest.warns(*args, **kwargs):
            yield
    except Failed:
        pass
    else:
        raise Failed("A warning was emitted.")


def random_sssten(order: int, dim: int, nnz: Optional[int]=None,
                  seed: Union[int, RandomState]=0, dtype=float) -> SSSTensor:
    """
    Return an `SSSTensor` with `nnz` hyperedges at random positions, with
    normally distributed weights. If `nnz` is None, every independent
    component is set.
    `dtype` may be `float`, `int` (weights in [-5, 5)) or `complex`.
    """
    rng = seed if isinstance(seed, RandomState) else RandomState(seed)
    all_indices = list(itertools.combinations_with_replacement(range(dim), order))
    if nnz is None or nnz > len(all_indices):
        nnz = len(all_indices)
    chosen = rng.choice(len(all_indices), size=nnz, replace=False)
    if dtype is complex:
        weights = rng.normal(size=nnz) + 1j*rng.normal(size=nnz)
    elif dtype is int:
        weights = rng.randint(-5, 5, size=nnz)
    else:
        weights = rng.normal(size=nnz)
    return SSSTensor({all_indices[i]: w for i, w in zip(chosen, weights)},
                     cubical_dimension=dim, order=order)


def as_dense(result) -> np.ndarray:
    "Convert any contraction result (scalar, vector, sparse matrix, SSSTensor) to a dense array."
    if isinstance(result, SSSTensor):
        return result.todense()
    elif sp.issparse(result):
        return result.toarray()
    else:
        return np.asarray(result)
