# -*- coding: utf-8 -*-
# ---
# jupyter:
#   jupytext:
#     notebook_metadata_filter: -jupytext.text_representation.jupytext_version,-kernelspec
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
# ---

# %% [markdown]
# # Utility functions for sparse symmetric tensors

# %%
from __future__ import annotations

# %%
import itertools
import math
from collections import Counter
from itertools import accumulate
from warnings import warn
import numpy as np

from typing import Any, Dict, Generator, Iterable, List, Mapping, Optional, Tuple, Union
from scityping import Number
from scityping.numpy import Array

# %% tags=["remove-cell", "active-py"]
if __name__ != "__main__":
    exenv = "module"
else:
    exenv = "script"

# %% tags=["remove-cell", "active-ipynb"]
# exenv = "jbook"

# %%
__all__ = [
    "multinom", "permutation_count",
    "get_index_representative", "symmetrize_index", "is_symmetric",
    "iter_multi_indices",
    "reduce_dictionaries", "reduce_edges"
    ]

# %% [markdown]
# ## Combinatorics utilities

# %% [markdown]
# ### `multinom`
# Applies
# $$\binom{n}{k_1,k_2,\dotsc,k_m} = \binom{n}{k_1} \binom{n-k_1}{k_2} \dotsb \binom{n-\sum_{i<m} k_i}{k_m} \,.$$
# Each binomial term is computed with `math.comb`.
# The $k_i$ terms are first sorted, since $\binom{n}{k}$ is less computationally expensive when $k$ is close to 0 or $n$.

# %%
def multinom(n: int, klst: Iterable[int]) -> int:
    """
    Compute and return the multinomial
    ⎛      n      ⎞
    ⎝k1, k2, …, km⎠
    """
    klst = sorted(filter(None, klst))  # `filter` removes 0 elements
    s = sum(klst)
    if s < n:
        warn("Extending `klst` so that Σk = n.")
        klst.append(n-s)
    elif s > n:
        raise ValueError(f"Sum of `klst` values ({s}) exceeds n ({n}).")
    nlst = [n, *(n - c for c in accumulate(klst[:-1]))]
    return math.prod(math.comb(ni, k) for ni, k in zip(nlst, klst))


# %% [markdown]
# ### `permutation_count`
#
# The *multiplicity factor* of an index multiset: the number of distinct orderings of its elements,
# $$γ = \frac{r!}{n_1! n_2! \dotsb n_l!} \,,$$
# where $n_k$ is the number of times the $k$-th distinct index value appears.
# For a hyperedge, this is the number of dense tensor components which share its weight.
# The index does not need to be sorted.

# %%
def permutation_count(index: Iterable[Any]) -> int:
    """
    Equivalent to `len(list(more_itertools.distinct_permutations(index)))`.

    >>> permutation_count((0, 0, 1))
    3
    """
    index = tuple(index)
    return multinom(len(index), Counter(index).values())


# %% [markdown]
# ## Index utilities

# %% [markdown]
# ### `get_index_representative`
# Each set of indices equivalent under permutation has one representative index; for an `SSSTensor` this is the index sorted in non-decreasing order. These are the only keys ever stored in a tensor’s edge dictionary.

# %%
def get_index_representative(index: Iterable[int]) -> Tuple[int, ...]:
    "Return the representative for the index class to which `index` belongs."
    return tuple(sorted(int(i) for i in index))


# %% [markdown]
# ### `symmetrize_index(index)`
#
# Returns an advanced index representing all the symmetrically equivalent indices
# For example,
#
# $$I := \texttt{(0,1,2)} \mapsto \hat{I} := \texttt{([0, 0, 1, 1, 2, 2], [1, 2, 0, 2, 0, 1], [2, 1, 2, 0, 1, 0])}$$
#
# Used to scatter a hyperedge into every position it stands for in a dense array.

# %%
def symmetrize_index(index: Tuple[int]) -> Tuple[List[int], ...]:
    # NB: dict.fromkeys is used to keep only unique permutations
    return tuple(list(permuted_index) for permuted_index in  # Lists trigger advanced indexing
                 zip(*dict.fromkeys(itertools.permutations(index)).keys()))


# %% [markdown]
# ### `is_symmetric`

# %%
def is_symmetric(dense_tensor: Array, rtol=1e-5, atol=1e-8) -> bool:
    """
    Return True if `dense_tensor` is symmetric.
    Arrays are compared with `numpy.allclose`; tolerance parameters `rtol`
    and `atol` are passed on to that function.
    """
    A = np.asarray(dense_tensor)
    if len(set(A.shape)) > 1:
        return False
    return all(np.allclose(A, A.transpose(σaxes), rtol, atol, equal_nan=True)
               for σaxes in itertools.permutations(range(A.ndim)))


# %% [markdown]
# ### `iter_multi_indices`
#
# Enumerate every multi-index $(i_1, \dotsc, i_r)$ with $0 \leq i_j < d$, in the same (C) order as `numpy.ndindex`.
# The rank $r$ is an ordinary argument, so the same routine serves tensors of any rank; the recursion depth is $r$.

# %%
def iter_multi_indices(dim: int, rank: int, prefix: Tuple[int, ...]=()
    ) -> Generator[Tuple[int, ...], None, None]:
    if rank == 0:
        yield prefix
        return
    for i in range(dim):
        yield from iter_multi_indices(dim, rank-1, prefix + (i,))


# %% [markdown]
# ## Accumulating edges
#
# Contractions produce many partial contributions `index → value`, and several of them may target the same index: both different edges of a tensor and different expansion paths within a single edge. Colliding values are always **summed**, never overwritten. The order of keys in the result is unspecified.

# %% [markdown]
# ### `reduce_dictionaries`
# Merge any number of mappings into `accumulator`, in place. The accumulator is also returned, to allow chaining.

# %%
def reduce_dictionaries(accumulator: Dict[Tuple[int, ...], Number],
                        *partials: Mapping[Tuple[int, ...], Number]
    ) -> Dict[Tuple[int, ...], Number]:
    for partial in partials:
        for index, value in partial.items():
            if index in accumulator:
                accumulator[index] += value
            else:
                accumulator[index] = value
    return accumulator


# %% [markdown]
# ### `reduce_edges`
# Same as `reduce_dictionaries`, but for a flat list of `(index, value)` pairs with possibly repeated indices. Returns a fresh dictionary, unless an `accumulator` is passed to extend in place.

# %%
def reduce_edges(edges: Iterable[Tuple[Tuple[int, ...], Number]],
                 accumulator: Optional[Dict[Tuple[int, ...], Number]]=None
    ) -> Dict[Tuple[int, ...], Number]:
    condensed = {} if accumulator is None else accumulator
    for index, value in edges:
        if index in condensed:
            condensed[index] += value
        else:
            condensed[index] = value
    return condensed


# %%
if exenv != "module":
    assert multinom(4, (2, 2)) == 6
    assert permutation_count((0, 0, 1)) == 3
    assert permutation_count(()) == 1
    assert symmetrize_index((0,1,2)) == ([0, 0, 1, 1, 2, 2], [1, 2, 0, 2, 0, 1], [2, 1, 2, 0, 1, 0])
    assert list(iter_multi_indices(2, 2)) == list(np.ndindex(2, 2))
    assert reduce_edges([((0,), 1.), ((1,), 2.), ((0,), 3.)]) == {(0,): 4., (1,): 2.}
