# -*- coding: utf-8 -*-
# ---
# jupyter:
#   jupytext:
#     formats: py:percent
#     notebook_metadata_filter: -jupytext.text_representation.jupytext_version,-kernelspec
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
# ---

# %% [markdown]
# # Contraction of dense arrays
#
# The dense counterpart to `contraction.contract`: a plain NumPy array `A` of rank $k$, with size $n$ along every axis, is contracted with a vector $x$ along its **last** $m$ axes:
#
# \begin{equation*}
# y_{i_1 \dotsb i_{k-m}} = \sum_{i_{k-m+1}, \dotsc, i_k} A_{i_1 \dotsb i_k} \, x_{i_{k-m+1}} \dotsb x_{i_k}
# \end{equation*}
#
# `A` does not need to be symmetric. This is the reference against which the sparse symmetric contractions are checked, and also the fallback for tensors which are not stored as hyperedges.

# %%
from __future__ import annotations

# %%
from numbers import Integral
import logging

import numpy as np

from typing import Union
from scityping import Number
from scityping.numpy import Array

# %% tags=["active-py"]
from . import utils

# %%
__all__ = ["dense_contract"]

# %%
logger = logging.getLogger(__name__)


# %% [markdown]
# ## Implementation
#
# Neither $k$ nor $m$ is known in advance, so the loops cannot be written out. Instead:
#
# - The $k - m$ outer axes are enumerated with `utils.iter_multi_indices`, which recurses once per axis.
# - For each outer index, `_contract_trailing` recurses through the remaining $m$ axes, carrying the running product $x_{i_{k-m+1}} \dotsb x_{i_j}$, and sums the weighted components at the leaves.

# %%
def _contract_trailing(block: Array, x: Array, weight: Number=1) -> Number:
    """
    Return ``Σ_{i_1…i_m} block[i_1,…,i_m] * weight * x[i_1] * … * x[i_m]``
    where ``m = block.ndim``.
    """
    if np.ndim(block) == 0:
        return weight * block
    total = 0
    for i, xi in enumerate(x):
        total += _contract_trailing(block[i], x, weight * xi)
    return total


# %%
def dense_contract(A: Array, x: Array, m: int) -> Union[Array, Number]:
    """
    Contract the last `m` axes of the dense array `A` with the vector `x`.

    Returns
    -------
    Array of rank ``A.ndim - m``, or a scalar if ``m == A.ndim``.
    The dtype is the result type of `A` and `x`.

    Raises
    ------
    ValueError:
      - If `A` is 0-dimensional, or its axes do not all have the same size.
      - If `x` is not a vector of the same size.
      - If `m` is not within ``[1, A.ndim]``.
    TypeError:
      - If `m` is not an integer.
    """
    A = np.asarray(A)
    x = np.asarray(x)
    k = A.ndim
    if k == 0 or len(set(A.shape)) > 1:
        raise ValueError("Dense contraction requires an array with the same size "
                         f"along every axis; received shape {A.shape}.")
    n = A.shape[0]
    if x.shape != (n,):
        raise ValueError("Dimensions of array and vector must match; received "
                         f"{A.shape} (array) and {x.shape} (vector).")
    if not isinstance(m, Integral) or isinstance(m, bool):
        raise TypeError(f"Number of contracted modes must be an integer; received {m!r}.")
    if not 0 < m <= k:
        raise ValueError(f"Cannot contract {m} modes of an array of rank {k}.")

    logger.debug(f"Dense contraction: rank {k}, dim {n}, {m} modes.")
    p = k - m
    y = np.zeros((n,)*p, dtype=np.result_type(A, x))
    for outer in utils.iter_multi_indices(n, p):
        y[outer] = _contract_trailing(A[outer], x)

    if p == 0:
        return y[()]
    else:
        return y
