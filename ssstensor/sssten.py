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
# # Super-symmetric sparse tensors stored as hyperedges

# %%
from __future__ import annotations

# %%
from collections.abc import Mapping as Mapping_
from warnings import warn
import logging
import textwrap

import numpy as np

from typing import ItemsView, Iterable, KeysView, Optional, Tuple, Union, ValuesView, Dict
from scityping import Number
from scityping.numpy import Array, DType

# %% tags=["active-py"]
from . import utils

# %%
__all__ = ["SSSTensor"]

# %%
logger = logging.getLogger(__name__)

# %% [markdown]
# ## Rationale
#
# A symmetric tensor of rank $k$ and dimension $n$ has $n^k$ components, but only $\binom{n+k-1}{k}$ of them are independent. When in addition most components are zero (as for the adjacency tensor of a hypergraph), it is enough to store the non-zero independent components.
#
# An `SSSTensor` stores exactly that: a dictionary mapping *canonical* (sorted) index tuples to weights. Each entry is called a *hyperedge*, and stands for every permutation of its index with the same weight. For example, the single entry
#
# ```python
# {(0, 0, 1): 3.0}
# ```
#
# represents the three components $A_{001} = A_{010} = A_{100} = 3$; all other components are zero.
#
# The number of dense components represented by a hyperedge is its *multiplicity factor*, computed by `utils.permutation_count`.

# %% [markdown]
# ## Usage hints
#
# - `A[i, j, k]` returns the weight of the component, for any order of the indices.
# - `A.edges` is the underlying dictionary. Contraction routines treat it as read-only.
# - `A.todense()` materializes all permutations of all edges; avoid for large orders or dimensions.
#
# **Public attributes**
# - *order*  → `int` (number of modes)
# - *cubical_dimension* → `int` (common size of every mode)
# - *edges* → `dict` (canonical index → weight)
# - *dtype* → (e.g.) `dtype('float64')`
# - *shape* → $(n,n,\dotsc)$
# - *nnz*  → `int` (number of stored hyperedges)
# - *dense_size*  → `int` (number of components of the dense tensor)

# %% [markdown]
# ### `SSSTensor`

# %%
class SSSTensor:
    """
    A symmetric tensor storing one weight per non-zero index class.

    On creation, indices are put in canonical (sorted) order; entries which
    differ only by a permutation of their index are summed.
    """
    edges             : Dict[Tuple[int, ...], Number]
    order             : int
    cubical_dimension : int

    def __init__(self,
                 edges: Union[Mapping_, Iterable[Tuple[Tuple[int, ...], Number]]],
                 cubical_dimension: Optional[int]=None,
                 order: Optional[int]=None):
        """
        Parameters
        ----------
        edges: Either a mapping ``index → weight``, or an iterable of
            ``(index, weight)`` pairs. Indices are 0-based.
        cubical_dimension: Size of every mode. Inferred as the largest index
            value plus one if not provided.
        order: Number of modes. Inferred from the length of the indices
            if not provided.

        Raises
        ------
        TypeError:
          - If `order` or `cubical_dimension` are not provided and cannot be
            inferred (i.e. when there are no edges).
        ValueError:
          - If indices do not all have the same length, or it differs from
            `order`.
        """
        if isinstance(edges, Mapping_):
            edges = edges.items()
        self.edges = utils.reduce_edges(
            (utils.get_index_representative(index), weight) for index, weight in edges)

        index_lengths = {len(index) for index in self.edges}
        if len(index_lengths) > 1:
            raise ValueError("Hyperedge indices must all have the same length; "
                             f"received lengths {sorted(index_lengths)}.")
        if order is None and index_lengths:
            order = next(iter(index_lengths))
        elif index_lengths and index_lengths != {order}:
            raise ValueError(f"Cannot create a tensor of order {order} from "
                             f"indices of length {next(iter(index_lengths))}.")
        if cubical_dimension is None and self.edges:
            cubical_dimension = max(index[-1] for index in self.edges) + 1

        # Ensure that 'order' and 'cubical_dimension' are set
        for val, valname in [(order, "order"), (cubical_dimension, "cubical_dimension")]:
            if val is None:
                raise TypeError(f"'{valname}' was not provided to {type(self).__qualname__}, "
                                "and it was not possible to infer it from `edges`.")
        self.order = int(order)
        self.cubical_dimension = int(cubical_dimension)

    ## Dunder methods ##

    def __str__(self):
        return (f"{type(self).__qualname__}(order: {self.order}, "
                f"dim: {self.cubical_dimension}, nnz: {self.nnz})")

    def __repr__(self):
        s = str(self)[:-1]
        data_s = "\n      ".join(textwrap.wrap(str(self.edges)))
        return f"{s}, edges:\n      {data_s})"

    def __len__(self):
        return len(self.edges)

    def __getitem__(self, key):
        if len(key) != self.order:
            raise IndexError(f"SSSTensor of order {self.order} only supports "
                             f"fully specified indices; received {key}.")
        return self.edges.get(utils.get_index_representative(key), self.dtype.type(0))

    def __array__(self, dtype=None, copy=None):
        warn(f"Converting an SSSTensor to a dense NumPy array of shape {self.shape}.")
        return self.todense().astype(dtype, copy=False) if dtype is not None else self.todense()

    ## Public attributes & API ##

    @property
    def dtype(self) -> DType:
        if not self.edges:
            return np.dtype('float64')
        return np.asarray(list(self.edges.values())).dtype

    @property
    def shape(self) -> Tuple[int, ...]:
        return (self.cubical_dimension,)*self.order

    @property
    def nnz(self) -> int:
        return len(self.edges)

    @property
    def dense_size(self) -> int:
        """
        Return the number of elements of the corresponding dense array.

        Equivalent to ``self.todense().size``, but without the potentially
        disastrous memory requirements.
        """
        return self.cubical_dimension**self.order

    def keys(self) -> KeysView:
        return self.edges.keys()
    def values(self) -> ValuesView:
        return self.edges.values()
    def items(self) -> ItemsView:
        return self.edges.items()

    def copy(self) -> SSSTensor:
        "Return a copy of the current tensor"
        return type(self)(dict(self.edges), cubical_dimension=self.cubical_dimension,
                          order=self.order)

    def todense(self) -> Array:
        """
        Return the equivalent dense NumPy array, with every permutation of
        every hyperedge filled in.
        """
        logger.debug(f"Densifying {self} ({self.dense_size} components).")
        arr = np.zeros(self.shape, dtype=self.dtype)
        symmetrize_index = utils.symmetrize_index
        for index, weight in self.edges.items():
            arr[symmetrize_index(index)] = weight
        return arr


# %% tags=["active-ipynb"]
# A = SSSTensor({(0, 0, 1): 3.0}, cubical_dimension=2)
# print(A)
# A.todense()
